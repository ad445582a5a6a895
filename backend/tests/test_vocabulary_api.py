from datetime import date

from wordnest.application.vocabulary import VocabularyService, next_streak
from wordnest.main import app
from tests.http_client import SyncASGIClient
from tests.stores import isolated_store


def _student(student_id: str) -> SyncASGIClient:
    return SyncASGIClient(app, user_id=student_id)


def _story(client: SyncASGIClient, words: list[str]) -> dict:
    resp = client.post("/v1/stories", json={"level": "A1", "mode": "personalized", "unknownWords": words})
    assert resp.status_code == 200
    return resp.json()


def test_next_streak():
    today = date(2026, 10, 18)

    assert next_streak(0, None, today) == 1
    assert next_streak(4, "2026-10-18", today) == 4
    assert next_streak(4, "2026-10-17", today) == 5
    assert next_streak(4, "2026-10-10", today) == 1
    assert next_streak(4, "not-a-date", today) == 1


def test_word_mastery_updates_vocabulary_count():
    client = _student("vocab-student")
    new_words = _story(client, ["meadow", "pebble"])["newWords"]
    word_id = new_words[0]["id"]

    updated = client.patch(f"/v1/students/vocab-student/words/{word_id}", json={"mastery": "known"})
    invalid = client.patch(f"/v1/students/vocab-student/words/{word_id}", json={"mastery": "expert"})
    foreign = client.patch(f"/v1/students/someone-else/words/{word_id}", json={"mastery": "known"})

    assert updated.status_code == 200
    assert updated.json()["mastery"] == "known"
    assert updated.json()["lastReviewedAt"]
    assert invalid.status_code == 422
    assert foreign.status_code == 404

    progress = client.post("/v1/students/vocab-student/progress")
    assert progress.status_code == 200
    assert progress.json()["knownWords"] == 1
    assert progress.json()["unknownWords"] == 1
    assert progress.json()["newWordsToday"] == 1

    dashboard = client.get("/v1/students/vocab-student/dashboard")
    assert dashboard.status_code == 200
    profile = dashboard.json()["profile"]
    assert profile["vocabularyCount"] == 1
    assert profile["streak"] == 1
    assert profile["lastActiveDate"]
    assert {word["text"] for word in profile["words"]} == {"meadow", "pebble"}
    assert len(profile["stories"]) == 1
    assert dashboard.json()["recommendations"][0]["id"] == profile["stories"][0]["id"]


def test_dashboard_creates_default_profile():
    resp = _student("fresh-student").get("/v1/students/fresh-student/dashboard")

    assert resp.status_code == 200
    profile = resp.json()["profile"]
    assert profile["name"] == "New Learner"
    assert profile["level"] == "A1"
    assert profile["words"] == []
    assert resp.json()["recommendations"] == []


def test_streak_continues_on_consecutive_days():
    store = isolated_store()
    store.ensure_student_profile("streak-student")
    days = iter([date(2026, 10, 1), date(2026, 10, 2), date(2026, 10, 2), date(2026, 10, 5)])
    service = VocabularyService(store=store, clock=lambda: next(days))

    streaks = [service.dashboard("streak-student").profile.streak for _ in range(4)]

    assert streaks == [1, 2, 2, 1]


def test_story_listing_and_cleanup_keep_the_newest():
    client = _student("cleanup-student")
    ids = [_story(client, [f"word{i}"])["story"]["id"] for i in range(5)]

    limited = client.get("/v1/students/cleanup-student/stories", params={"limit": 2}).json()["stories"]
    assert [item["id"] for item in limited] == ids[::-1][:2]

    cleaned = client.post("/v1/students/cleanup-student/stories/cleanup")
    assert cleaned.status_code == 200
    assert cleaned.json() == {"deletedCount": 2}

    remaining = client.get("/v1/students/cleanup-student/stories").json()["stories"]
    assert [item["id"] for item in remaining] == ids[::-1][:3]


def test_badge_check_endpoint():
    client = _student("badge-api-student")
    _story(client, ["comet"])

    resp = client.post("/v1/students/badge-api-student/badges/check")
    missing = client.post("/v1/students/nobody-here/badges/check")

    assert resp.status_code == 200
    assert resp.json()["newBadges"] == []
    assert len(resp.json()["allBadges"]) == 15
    assert all(item["isUnlocked"] is False for item in resp.json()["allBadges"])
    assert missing.status_code == 404
