from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from wordnest.domain.errors import NotFoundError
from wordnest.domain.models import BadgeRecord


@dataclass(frozen=True)
class BadgeDefinition:
    badge_type: str
    title: str
    description: str
    icon: str
    target: int
    metric: str | None


# metric=None: defined but never unlocked.
BADGE_DEFINITIONS: tuple[BadgeDefinition, ...] = (
    BadgeDefinition("7-day-streak", "7-Day Streak", "Study for 7 days in a row", "🔥", 7, "streak"),
    BadgeDefinition("30-day-streak", "30-Day Streak", "Study for 30 days in a row", "🌟", 30, "streak"),
    BadgeDefinition("100-words", "100 Words Mastered", "Master 100 words", "📚", 100, "words"),
    BadgeDefinition("500-words", "500 Words Mastered", "Master 500 words", "🎓", 500, "words"),
    BadgeDefinition("1000-words", "1000 Words Mastered", "Master 1000 words", "🏆", 1000, "words"),
    BadgeDefinition("10-stories", "10 Stories Read", "Read 10 stories", "📖", 10, "stories"),
    BadgeDefinition("50-stories", "50 Stories Read", "Read 50 stories", "📚", 50, "stories"),
    BadgeDefinition("100-stories", "100 Stories Read", "Read 100 stories", "🎯", 100, "stories"),
    BadgeDefinition("first-assignment", "First Assignment", "Complete your first assignment", "✅", 1, "assignments"),
    BadgeDefinition("10-assignments", "10 Assignments", "Complete 10 assignments", "💯", 10, "assignments"),
    BadgeDefinition("50-assignments", "50 Assignments", "Complete 50 assignments", "🌟", 50, "assignments"),
    BadgeDefinition("perfect-score", "Perfect Score", "Get 100% on any assignment", "🏅", 1, "perfect_scores"),
    BadgeDefinition("10-perfect-scores", "10 Perfect Scores", "Get 100% on 10 assignments", "💎", 10, "perfect_scores"),
    BadgeDefinition(
        "early-bird", "Early Bird", "Complete an assignment before the due date", "🌅", 1, None
    ),
    BadgeDefinition("quiz-master", "Quiz Master", "Complete 10 story quizzes with 80%+ score", "🧠", 10, None),
)


@dataclass(frozen=True)
class StudentStats:
    streak: int = 0
    words: int = 0
    stories: int = 0
    assignments: int = 0
    perfect_scores: int = 0


@dataclass(frozen=True)
class BadgeEvaluation:
    definition: BadgeDefinition
    progress: int
    unlocked: bool


def evaluate_badges(stats: StudentStats, already_unlocked: Iterable[str] = ()) -> list[BadgeEvaluation]:
    """Progress for every badge not yet unlocked."""
    skip = set(already_unlocked)
    results: list[BadgeEvaluation] = []
    for definition in BADGE_DEFINITIONS:
        if definition.badge_type in skip:
            continue
        if definition.metric is None:
            results.append(BadgeEvaluation(definition=definition, progress=0, unlocked=False))
            continue
        progress = int(getattr(stats, definition.metric))
        results.append(
            BadgeEvaluation(definition=definition, progress=progress, unlocked=progress >= definition.target)
        )
    return results


class BadgeService:
    def __init__(self, *, store):
        self.store = store

    def collect_stats(self, student_id: str, *, streak: int) -> StudentStats:
        words = self.store.list_words_for_student(student_id, limit=10000)
        submissions = self.store.list_submissions_for_student(student_id)
        return StudentStats(
            streak=streak,
            words=sum(1 for word in words if word.mastery == "known"),
            stories=len(self.store.list_stories_for_student(student_id)),
            assignments=len(submissions),
            perfect_scores=sum(1 for item in submissions if item.max_score > 0 and item.score == item.max_score),
        )

    def check_badges(self, student_id: str) -> tuple[list[BadgeRecord], list[BadgeRecord]]:
        """Persist progress for locked badges; returns ``(new_badges, all_badges)``."""
        profile = self.store.get_student_profile(student_id)
        if profile is None:
            raise NotFoundError("Student not found")

        unlocked = {badge.badge_type for badge in self.store.list_badges(student_id) if badge.is_unlocked}
        stats = self.collect_stats(student_id, streak=profile.streak)
        now = datetime.now(timezone.utc).isoformat()

        new_badges: list[BadgeRecord] = []
        for evaluation in evaluate_badges(stats, unlocked):
            definition = evaluation.definition
            saved = self.store.upsert_badge(
                BadgeRecord(
                    badge_id=f"{student_id}-{definition.badge_type}",
                    student_id=student_id,
                    badge_type=definition.badge_type,
                    title=definition.title,
                    description=definition.description,
                    icon=definition.icon,
                    progress=evaluation.progress,
                    target=definition.target,
                    is_unlocked=evaluation.unlocked,
                    achieved_at=now if evaluation.unlocked else None,
                )
            )
            if evaluation.unlocked:
                new_badges.append(saved)

        return new_badges, self.store.list_badges(student_id)
