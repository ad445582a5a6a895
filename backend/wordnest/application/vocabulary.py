from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from wordnest.domain.errors import NotFoundError, ValidationError
from wordnest.domain.models import (
    BadgeRecord,
    StoryRecord,
    StudentProfileRecord,
    VocabularyProgressRecord,
    WordRecord,
)
from wordnest.infra.db.store import DatabaseStore

MASTERY_LEVELS = ("known", "learning", "unknown")
DASHBOARD_STORY_LIMIT = 50
RECOMMENDATION_COUNT = 3


@dataclass
class StudentDashboard:
    profile: StudentProfileRecord
    words: list[WordRecord] = field(default_factory=list)
    stories: list[StoryRecord] = field(default_factory=list)
    badges: list[BadgeRecord] = field(default_factory=list)
    recommendations: list[StoryRecord] = field(default_factory=list)


def _today() -> date:
    return datetime.now(timezone.utc).date()


def next_streak(current: int, last_active: str | None, today: date) -> int:
    """First visit starts at 1; consecutive days add one; a gap resets to 1."""
    if not last_active:
        return 1
    try:
        last = date.fromisoformat(last_active)
    except ValueError:
        return 1
    gap = (today - last).days
    if gap == 0:
        return current
    if gap == 1:
        return current + 1
    return 1


class VocabularyService:
    def __init__(self, *, store: DatabaseStore, clock=_today):
        self.store = store
        self.clock = clock

    def update_mastery(self, *, student_id: str, word_id: str, mastery: str) -> WordRecord:
        if mastery not in MASTERY_LEVELS:
            raise ValidationError(f"mastery must be one of {', '.join(MASTERY_LEVELS)}")
        word = self.store.get_word(word_id)
        if word is None or word.student_id != student_id:
            raise NotFoundError("Word not found for student")

        updated = self.store.update_word_mastery(word_id=word_id, mastery=mastery)
        if updated is None:
            raise NotFoundError("Word not found for student")
        self.store.refresh_vocabulary_count(student_id)
        return updated

    def track_progress(self, student_id: str) -> VocabularyProgressRecord:
        words = self.store.list_words_for_student(student_id, limit=10000)
        counts = {level: sum(1 for word in words if word.mastery == level) for level in MASTERY_LEVELS}

        today = self.clock()
        yesterday = self.store.get_vocabulary_progress(
            student_id=student_id, date=(today - timedelta(days=1)).isoformat()
        )
        previous_known = yesterday.known_words if yesterday is not None else 0

        return self.store.upsert_vocabulary_progress(
            VocabularyProgressRecord(
                student_id=student_id,
                date=today.isoformat(),
                known_words=counts["known"],
                learning_words=counts["learning"],
                unknown_words=counts["unknown"],
                new_words_today=max(0, counts["known"] - previous_known),
            )
        )

    def dashboard(self, student_id: str) -> StudentDashboard:
        if not student_id.strip():
            raise ValidationError("Student identifier is required")

        profile, _ = self.store.ensure_student_profile(student_id)
        mastered = self.store.refresh_vocabulary_count(student_id)

        today = self.clock()
        streak = next_streak(profile.streak, profile.last_active_date, today)
        if streak != profile.streak or profile.last_active_date != today.isoformat():
            profile = self.store.update_student_profile(
                student_id, streak=streak, last_active_date=today.isoformat()
            ) or profile
        profile.vocabulary_count = mastered

        stories = self.store.list_stories_for_student(student_id, limit=DASHBOARD_STORY_LIMIT)
        return StudentDashboard(
            profile=profile,
            words=self.store.list_words_for_student(student_id),
            stories=stories,
            badges=self.store.list_badges(student_id),
            recommendations=stories[:RECOMMENDATION_COUNT],
        )
