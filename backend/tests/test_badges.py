import pytest

from wordnest.application.badges import BADGE_DEFINITIONS, BadgeService, StudentStats, evaluate_badges
from wordnest.domain.errors import NotFoundError
from tests.stores import isolated_store


def _by_type(evaluations):
    return {item.definition.badge_type: item for item in evaluations}


def test_badge_catalogue():
    types = [definition.badge_type for definition in BADGE_DEFINITIONS]

    assert len(types) == 15
    assert len(set(types)) == 15
    assert {"7-day-streak", "first-assignment", "perfect-score", "quiz-master"} <= set(types)


def test_evaluation_uses_each_badge_metric():
    stats = StudentStats(streak=8, words=120, stories=10, assignments=1, perfect_scores=1)

    result = _by_type(evaluate_badges(stats))

    assert result["7-day-streak"].unlocked is True
    assert result["30-day-streak"].unlocked is False
    assert result["30-day-streak"].progress == 8
    assert result["100-words"].unlocked is True
    assert result["500-words"].progress == 120
    assert result["10-stories"].unlocked is True
    assert result["first-assignment"].unlocked is True
    assert result["perfect-score"].unlocked is True


def test_untracked_badges_never_unlock():
    stats = StudentStats(streak=999, words=9999, stories=999, assignments=999, perfect_scores=999)

    result = _by_type(evaluate_badges(stats))

    assert result["early-bird"].unlocked is False
    assert result["quiz-master"].unlocked is False
    assert result["quiz-master"].progress == 0


def test_already_unlocked_badges_are_skipped():
    result = _by_type(evaluate_badges(StudentStats(), already_unlocked=["7-day-streak"]))

    assert "7-day-streak" not in result
    assert len(result) == 14


def test_check_badges_persists_progress_and_reports_new_unlocks():
    store = isolated_store()
    student_id = "badge-student"
    store.ensure_student_profile(student_id)
    store.create_submission(
        assignment_id="asg_x",
        student_id=student_id,
        teacher_id="teacher-x",
        assignment_type="basic",
        answers={},
        score=100,
        max_score=100,
        feedback="Great job completing the story!",
        time_spent_seconds=60,
    )
    service = BadgeService(store=store)

    new_badges, all_badges = service.check_badges(student_id)

    assert sorted(item.badge_type for item in new_badges) == ["first-assignment", "perfect-score"]
    assert len(all_badges) == 15
    unlocked = [item for item in all_badges if item.is_unlocked]
    assert all(item.achieved_at for item in unlocked)
    assert all(item.badge_id == f"{student_id}-{item.badge_type}" for item in all_badges)

    again_new, again_all = service.check_badges(student_id)
    assert again_new == []
    assert len(again_all) == 15


def test_check_badges_requires_a_profile():
    with pytest.raises(NotFoundError):
        BadgeService(store=isolated_store()).check_badges("ghost-student")
