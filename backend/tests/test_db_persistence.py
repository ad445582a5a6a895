from tests.stores import isolated_store


def _new_job(store, user_id: str = "user-db"):
    return store.create_job(
        user_id=user_id,
        job_type="translation",
        input_payload={"word": "apple", "sourceLanguage": "en", "targetLanguage": "hu"},
    )


def test_database_store_persists_across_instances():
    first = isolated_store()
    created = _new_job(first)

    second = isolated_store()
    job = second.get_job(created.job_id)
    events = second.list_job_events(created.job_id)

    assert created.job_id.startswith("job_")
    assert job is not None
    assert job.status == "pending"
    assert job.input["word"] == "apple"
    assert job.result is None
    assert [item.status for item in events] == ["pending"]


def test_job_transitions_are_guarded():
    store = isolated_store()
    job = _new_job(store)

    assert store.complete_job(job_id=job.job_id, result={"translation": "alma"}) is False
    assert store.claim_job(job.job_id) is True
    assert store.claim_job(job.job_id) is False
    assert store.complete_job(job_id=job.job_id, result={"translation": "alma"}) is True
    assert store.fail_job(job_id=job.job_id, error_message="late") is False

    done = store.get_job(job.job_id)
    assert done.status == "completed"
    assert done.result == {"translation": "alma"}
    assert done.error is None
    assert done.completed_at is not None
    assert [item.status for item in store.list_job_events(job.job_id)] == ["pending", "processing", "completed"]


def test_list_jobs_filters_by_status_in_insertion_order():
    store = isolated_store()
    first = _new_job(store, user_id="user-list")
    second = _new_job(store, user_id="user-list")
    store.claim_job(first.job_id)

    pending_ids = [job.job_id for job in store.list_jobs(status="pending")]
    processing_ids = [job.job_id for job in store.list_jobs(status="processing")]

    assert second.job_id in pending_ids
    assert first.job_id not in pending_ids
    assert first.job_id in processing_ids
    all_ids = [job.job_id for job in store.list_jobs()]
    assert all_ids.index(first.job_id) < all_ids.index(second.job_id)


def test_unknown_job_cannot_be_claimed():
    store = isolated_store()

    assert store.get_job("job_missing") is None
    assert store.claim_job("job_missing") is False
    assert store.list_job_events("job_missing") == []


def test_student_profile_defaults_and_vocabulary_count():
    store = isolated_store()

    profile, created = store.ensure_student_profile("student-db")
    again, created_again = store.ensure_student_profile("student-db")

    assert created is True
    assert created_again is False
    assert again.student_id == profile.student_id
    assert profile.name == "New Learner"
    assert profile.level == "A1"
    assert profile.email.endswith("@students.wordnest.local")

    known = store.create_word(student_id="student-db", text="river", translation="folyó", mastery="known")
    store.create_word(student_id="student-db", text="hill", translation="domb", mastery="unknown")
    store.create_word(student_id="student-db", text="lake", translation="tó", mastery="learning")

    assert known.word_id.startswith("word_")
    assert store.refresh_vocabulary_count("student-db") == 2
    assert store.get_student_profile("student-db").vocabulary_count == 2


def test_story_delete_cascades_quiz_questions():
    store = isolated_store()
    story = store.create_story(title="T", content="Some content.", level="A1", student_id="student-cascade")
    questions = store.create_quiz_questions(
        story_id=story.story_id,
        questions=[{"question": "Q?", "options": ["a", "b"], "correctAnswer": "A", "explanation": ""}],
    )

    assert questions[0].question_id.endswith("-q1")
    assert store.count_quiz_questions(story.story_id) == 1
    assert store.delete_stories([story.story_id]) == 1
    assert store.get_story(story.story_id) is None
    assert store.count_quiz_questions(story.story_id) == 0
