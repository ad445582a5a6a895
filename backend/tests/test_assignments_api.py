from wordnest.main import app
from tests.http_client import SyncASGIClient


def _client(user_id: str | None = None) -> SyncASGIClient:
    return SyncASGIClient(app, user_id=user_id)


def _teacher(teacher_id: str, name: str = "Ms. Rivera") -> None:
    resp = _client().post(
        "/v1/teachers",
        json={"teacherId": teacher_id, "name": name, "email": f"{teacher_id}@school.test", "school": "Hill School"},
    )
    assert resp.status_code == 200


def _teacher_story(teacher_id: str) -> dict:
    resp = _client(teacher_id).post(
        "/v1/stories",
        json={"level": "A2", "mode": "teacher", "requiredWords": ["notebook"]},
    )
    assert resp.status_code == 200
    return resp.json()["story"]


def _generate(teacher_id: str, **fields):
    body = {"teacherId": teacher_id, "title": "Practice", "level": "A2", "dueDate": "2026-11-20", **fields}
    return _client().post("/v1/assignments/generate", json=body)


def test_teacher_profiles_are_unique():
    _teacher("teacher-unique")

    duplicate = _client().post(
        "/v1/teachers",
        json={"teacherId": "teacher-unique", "name": "Again", "email": "again@school.test"},
    )

    assert duplicate.status_code == 409


def test_create_assignment_requires_teacher_profile():
    resp = _client().post(
        "/v1/assignments",
        json={"teacherId": "teacher-ghost", "title": "Read", "dueDate": "2026-11-01", "level": "A1"},
    )

    assert resp.status_code == 404


def test_create_assignment_starts_as_draft():
    _teacher("teacher-draft")

    resp = _client().post(
        "/v1/assignments",
        json={
            "teacherId": "teacher-draft",
            "title": " Weekly reading ",
            "dueDate": "2026-11-01",
            "level": "A1",
            "requiredWords": ["apple", " ", "pear"],
        },
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"].startswith("asg_")
    assert body["status"] == "draft"
    assert body["assignmentType"] == "basic"
    assert body["title"] == "Weekly reading"
    assert body["requiredWords"] == ["apple", "pear"]


def test_generate_fill_blanks_assignment():
    _teacher("teacher-blanks")
    story = _teacher_story("teacher-blanks")
    assert story["teacherId"] == "teacher-blanks"

    resp = _generate("teacher-blanks", assignmentType="fill_blanks", storyId=story["id"], wordsToRemove=["learner"])

    assert resp.status_code == 200
    body = resp.json()
    assert body["storyContent"].count("_____") == len(body["blankPositions"])
    assert body["blankPositions"]
    assert all(item["word"] == "learner" for item in body["blankPositions"])
    assert body["requiredWords"] == ["learner"]
    assert "learner " not in body["storyContent"]


def test_generate_assignment_validation():
    _teacher("teacher-invalid")
    story = _teacher_story("teacher-invalid")

    invalid_type = _generate("teacher-invalid", assignmentType="essay")
    basic_without_story = _generate("teacher-invalid", assignmentType="basic")
    blanks_without_words = _generate("teacher-invalid", assignmentType="fill_blanks", storyId=story["id"])
    too_few_custom = _generate("teacher-invalid", assignmentType="custom_words", customWords=["a", "b", "c"])
    missing_story = _generate("teacher-invalid", assignmentType="basic", storyId="story_missing")

    assert invalid_type.status_code == 422
    assert invalid_type.json()["detail"] == "Invalid assignment type: essay"
    assert basic_without_story.status_code == 422
    assert basic_without_story.json()["detail"] == "storyId is required for basic type"
    assert blanks_without_words.status_code == 422
    assert too_few_custom.status_code == 422
    assert missing_story.status_code == 404


def test_generate_word_matching_and_custom_words():
    _teacher("teacher-kinds")
    story = _teacher_story("teacher-kinds")

    matching = _generate("teacher-kinds", assignmentType="word_matching", storyId=story["id"], numberOfWords=6)
    custom = _generate(
        "teacher-kinds",
        assignmentType="custom_words",
        customWords=["river", "bridge", "market", "lantern", "harbor"],
    )

    assert matching.status_code == 200
    assert len(matching.json()["matchingWords"]) == 6
    assert matching.json()["matchingWords"][0] == "notebook"
    assert custom.status_code == 200
    assert custom.json()["storyContent"] is None
    assert custom.json()["requiredWords"] == ["river", "bridge", "market", "lantern", "harbor"]


def test_assignments_are_listed_by_due_date():
    _teacher("teacher-list")
    for title, due in [("Later", "2026-12-01"), ("Sooner", "2026-10-25")]:
        _client().post(
            "/v1/assignments",
            json={"teacherId": "teacher-list", "title": title, "dueDate": due, "level": "A1"},
        )

    resp = _client().get("/v1/teachers/teacher-list/assignments")

    assert resp.status_code == 200
    assert [item["title"] for item in resp.json()["assignments"]] == ["Sooner", "Later"]


def test_distribute_submit_and_analytics():
    _teacher("teacher-flow", name="Mr. Okafor")
    story = _teacher_story("teacher-flow")
    assignment = _generate(
        "teacher-flow",
        title="Notebook blanks",
        assignmentType="fill_blanks",
        storyId=story["id"],
        wordsToRemove=["learner"],
    ).json()
    assignment_id = assignment["id"]

    for student_id in ("pupil-a", "pupil-b"):
        added = _client().post("/v1/teachers/teacher-flow/classes/class-1/students", json={"studentId": student_id})
        assert added.status_code == 200
    assert added.json()["studentIds"] == ["pupil-a", "pupil-b"]

    distributed = _client().post(
        f"/v1/assignments/{assignment_id}/distribute",
        json={"teacherId": "teacher-flow", "classId": "class-1", "sendToAll": True},
    )
    assert distributed.status_code == 200
    assert distributed.json()["recipientCount"] == 2
    assert len(distributed.json()["notificationIds"]) == 2

    inbox = _client().get("/v1/students/pupil-a/notifications").json()["notifications"]
    assert inbox[0]["title"] == "New Assignment: Notebook blanks"
    assert inbox[0]["senderName"] == "Mr. Okafor"
    assert "Fill in 1 missing words" in inbox[0]["message"]
    assert inbox[0]["message"].endswith("| Due: 2026-11-20")
    assert inbox[0]["isRead"] is False

    perfect = _client().post(
        f"/v1/assignments/{assignment_id}/submissions",
        json={
            "studentId": "pupil-a",
            "answers": {"blanks": [{"answer": "learner", "correctAnswer": "learner"}, {"answer": "learners", "correctAnswer": "learner"}]},
            "timeSpentSeconds": 300,
        },
    )
    half = _client().post(
        f"/v1/assignments/{assignment_id}/submissions",
        json={
            "studentId": "pupil-b",
            "answers": {"blanks": [{"answer": "learner", "correctAnswer": "learner"}, {"answer": "teacher", "correctAnswer": "learner"}]},
            "timeSpentSeconds": 180,
        },
    )
    assert perfect.status_code == 200
    assert perfect.json()["score"] == 100
    assert perfect.json()["passed"] is True
    assert perfect.json()["feedback"] == "You got 2 out of 2 words correct!"
    assert half.json()["score"] == 50
    assert half.json()["percentage"] == 50
    assert half.json()["passed"] is False

    listed = _client().get("/v1/teachers/teacher-flow/assignments").json()["assignments"]
    assert listed[0]["status"] == "submitted"
    assert listed[0]["recipientCount"] == 2

    analytics = _client().get(f"/v1/assignments/{assignment_id}/analytics", params={"teacherId": "teacher-flow"})
    assert analytics.status_code == 200
    data = analytics.json()
    assert data["totalSubmissions"] == 2
    assert data["completionRate"] == 100
    assert data["averageScore"] == 75
    assert data["passRate"] == 50
    assert data["averageTimeMinutes"] == 4
    assert data["strugglingStudentIds"] == ["pupil-b"]
    assert data["topPerformerIds"] == ["pupil-a"]
    assert data["mostChallengingWords"] == ["learner"]
    assert data["excellentCount"] == 1
    assert data["needsImprovementCount"] == 1


def test_only_the_owner_can_distribute_or_view_analytics():
    _teacher("teacher-owner")
    assignment_id = _client().post(
        "/v1/assignments",
        json={"teacherId": "teacher-owner", "title": "Mine", "dueDate": "2026-11-01", "level": "A1"},
    ).json()["id"]

    stranger = _client().post(
        f"/v1/assignments/{assignment_id}/distribute",
        json={"teacherId": "teacher-stranger", "studentIds": ["pupil-x"]},
    )
    nobody = _client().post(
        f"/v1/assignments/{assignment_id}/distribute",
        json={"teacherId": "teacher-owner"},
    )
    analytics = _client().get(f"/v1/assignments/{assignment_id}/analytics", params={"teacherId": "teacher-stranger"})
    missing = _client().post("/v1/assignments/asg_missing/distribute", json={"teacherId": "teacher-owner", "studentIds": ["p"]})

    assert stranger.status_code == 403
    assert stranger.json()["detail"].startswith("Unauthorized")
    assert nobody.status_code == 422
    assert analytics.status_code == 403
    assert missing.status_code == 404
