from typing import Any

from wordnest.application.generation import ContentGenerationService
from wordnest.application.processing import GenerationJobProcessor
from wordnest.application.stories import StoryService
from wordnest.domain.models import JobChange
from wordnest.infra.db.store import DatabaseStore
from wordnest.infra.llm.mock import MockLLM
from wordnest.infra.ports.llm import LLMPort
from tests.stores import isolated_session_factory, isolated_store


class _CannedLLM(LLMPort):
    model_name = "canned-llm"

    def __init__(self, payload: dict[str, Any]):
        self.payload = payload
        self.calls = 0

    def generate_structured(self, *, prompt, schema, system_prompt=None, model=None, temperature=None):
        self.calls += 1
        return dict(self.payload)


class _RecordingPublisher:
    def __init__(self):
        self.events: list[dict[str, Any]] = []

    def publish(self, event: dict[str, Any]) -> None:
        self.events.append(event)


class _StoryWriteFailsStore(DatabaseStore):
    def create_story(self, **kwargs):
        raise RuntimeError("disk full")


def _processor(store: DatabaseStore, llm: LLMPort):
    content = ContentGenerationService(llm=llm)
    publisher = _RecordingPublisher()
    processor = GenerationJobProcessor(
        store=store,
        stories=StoryService(store=store, content=content),
        content=content,
        publisher=publisher,
    )
    return processor, publisher


def _translation_job(store: DatabaseStore, word: str = "run", target: str = "hu"):
    return store.create_job(
        user_id="learner-1",
        job_type="translation",
        input_payload={"word": word, "sourceLanguage": "en", "targetLanguage": target},
    )


def _story_job(store: DatabaseStore, user_id: str, **fields):
    payload = {"level": "A2", "age": 10, "mode": "personalized", **fields}
    return store.create_job(user_id=user_id, job_type="story", input_payload=payload)


def test_translation_fallback_completes_when_ai_is_unavailable():
    store = isolated_store()
    processor, publisher = _processor(store, MockLLM())
    job = _translation_job(store)

    assert processor.process_job(job) is True

    done = store.get_job(job.job_id)
    assert done.status == "completed"
    assert done.result["translation"] == '[Translation for "run"]'
    assert done.result["exampleSentence"] == 'The student used the word "run" in their essay.'
    assert done.result["exampleTranslation"] == 'A diák a "run" szót használta az esszéjében.'
    assert done.error
    assert [item.status for item in store.list_job_events(job.job_id)] == ["pending", "processing", "completed"]

    assert publisher.events == [
        {"jobId": job.job_id, "status": "completed", "translation": done.result, "error": None}
    ]


def test_translation_fallback_example_is_empty_outside_hungarian():
    store = isolated_store()
    processor, _ = _processor(store, MockLLM())
    job = _translation_job(store, word="tree", target="de")

    processor.process_job(job)

    assert store.get_job(job.job_id).result["exampleTranslation"] == ""


def test_translation_uses_model_output():
    store = isolated_store()
    llm = _CannedLLM({"word": "apple", "translation": "alma", "exampleSentence": "I eat an apple."})
    processor, publisher = _processor(store, llm)
    job = _translation_job(store, word="apple")

    processor.process_job(job)

    done = store.get_job(job.job_id)
    assert done.status == "completed"
    assert done.error is None
    assert done.result["translation"] == "alma"
    assert done.result["targetLanguage"] == "hu"
    assert publisher.events[0]["translation"]["translation"] == "alma"


def test_redelivered_job_is_processed_once():
    store = isolated_store()
    llm = _CannedLLM({"word": "sun", "translation": "nap", "exampleSentence": "The sun is hot."})
    processor, publisher = _processor(store, llm)
    job = _translation_job(store, word="sun")

    assert processor.process_job(job) is True
    assert processor.process_job(job) is False

    assert llm.calls == 1
    assert len(publisher.events) == 1
    assert [item.status for item in store.list_job_events(job.job_id)] == ["pending", "processing", "completed"]


def test_story_job_creates_words_only_for_unseen_unknown_words():
    store = isolated_store()
    student_id = "learner-story"
    existing = store.create_word(student_id=student_id, text="Forest", translation="erdő", mastery="learning")
    llm = _CannedLLM({"title": "The Brave Fox", "content": "A brave fox crossed the forest.", "highlightedWords": []})
    processor, publisher = _processor(store, llm)
    job = _story_job(store, student_id, unknownWords=["brave", "forest", "Brave"])

    processor.process_job(job)

    done = store.get_job(job.job_id)
    story = done.result["story"]
    new_words = done.result["newWords"]
    assert done.status == "completed"
    assert story["title"] == "The Brave Fox"
    assert story["studentId"] == student_id
    assert [word["text"] for word in new_words] == ["brave"]
    assert new_words[0]["mastery"] == "unknown"
    assert story["unknownWordIds"] == [new_words[0]["id"], existing.word_id, new_words[0]["id"]]
    assert len(store.list_words_for_student(student_id)) == 2
    assert store.get_student_profile(student_id) is not None

    event = publisher.events[0]
    assert event["status"] == "completed"
    assert event["story"]["id"] == story["id"]
    assert event["error"] is None


def test_story_fallback_records_ai_error_on_the_job():
    store = isolated_store()
    processor, publisher = _processor(store, MockLLM())
    job = _story_job(store, "learner-fallback", unknownWords=["lantern"])

    processor.process_job(job)

    done = store.get_job(job.job_id)
    assert done.status == "completed"
    assert done.error
    assert done.result["story"]["title"] == "Learning Adventure (A2)"
    assert publisher.events[0]["error"] is None


def test_teacher_story_touches_no_vocabulary():
    store = isolated_store()
    processor, _ = _processor(store, MockLLM())
    job = _story_job(store, "teacher-42", mode="teacher", unknownWords=["harbor"])

    processor.process_job(job)

    story = store.get_job(job.job_id).result["story"]
    assert story["teacherId"] == "teacher-42"
    assert story["studentId"] is None
    assert store.list_words_for_student("teacher-42") == []
    assert store.get_student_profile("teacher-42") is None


def test_persistence_failure_marks_job_failed():
    store = _StoryWriteFailsStore(session_factory=isolated_session_factory())
    processor, publisher = _processor(store, MockLLM())
    job = _story_job(store, "learner-broken")

    processor.process_job(job)

    failed = store.get_job(job.job_id)
    assert failed.status == "failed"
    assert failed.error == "disk full"
    assert failed.result is None
    assert publisher.events == [
        {"jobId": job.job_id, "status": "failed", "story": None, "newWords": [], "error": "disk full"}
    ]


def test_batch_isolates_bad_records():
    store = isolated_store()
    llm = _CannedLLM({"word": "moon", "translation": "hold", "exampleSentence": "The moon is bright."})
    processor, publisher = _processor(store, llm)
    broken = store.create_job(user_id="learner-1", job_type="story", input_payload={"level": "A1"})
    good = _translation_job(store, word="moon")

    processor.process_batch(
        [
            JobChange(event_name="INSERT", job=broken),
            JobChange(event_name="MODIFY", job=good),
            JobChange(event_name="INSERT", job=good),
        ]
    )

    assert store.get_job(broken.job_id).status == "failed"
    assert store.get_job(good.job_id).status == "completed"
    assert [(event["jobId"], event["status"]) for event in publisher.events] == [
        (broken.job_id, "failed"),
        (good.job_id, "completed"),
    ]
