from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

JobType = Literal["story", "translation"]
JobStatus = Literal["pending", "processing", "completed", "failed"]
WordMastery = Literal["known", "learning", "unknown"]
GenerationMode = Literal["placement", "personalized", "teacher"]
AssignmentStatus = Literal["draft", "sent", "submitted", "graded"]
AssignmentType = Literal["basic", "fill_blanks", "word_matching", "custom_words"]

TERMINAL_JOB_STATUSES = frozenset({"completed", "failed"})


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class JobRecord:
    job_id: str
    user_id: str
    job_type: JobType
    status: JobStatus
    input: dict[str, Any] = field(default_factory=dict)
    result: dict[str, Any] | None = None
    error: str | None = None
    started_at: str = field(default_factory=utc_now_iso)
    completed_at: str | None = None


@dataclass
class JobEventRecord:
    job_id: str
    status: JobStatus
    created_at: str = field(default_factory=utc_now_iso)


@dataclass(frozen=True)
class JobChange:
    """One change-stream delivery: the event name plus the new image of the job."""

    event_name: Literal["INSERT", "MODIFY", "REMOVE"]
    job: JobRecord


@dataclass
class StudentProfileRecord:
    student_id: str
    name: str
    email: str
    level: str = "A1"
    streak: int = 0
    vocabulary_count: int = 0
    last_active_date: str | None = None
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)


@dataclass
class TeacherProfileRecord:
    teacher_id: str
    name: str
    email: str
    school: str | None = None
    created_at: str = field(default_factory=utc_now_iso)


@dataclass
class WordRecord:
    word_id: str
    student_id: str
    text: str
    translation: str
    mastery: WordMastery
    example_sentence: str | None = None
    last_reviewed_at: str | None = None
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)


@dataclass
class StoryRecord:
    story_id: str
    title: str
    content: str
    level: str
    student_id: str | None = None
    teacher_id: str | None = None
    mode: GenerationMode | None = None
    unknown_word_ids: list[str] = field(default_factory=list)
    highlighted_words: list[dict[str, Any]] = field(default_factory=list)
    blank_positions: list[dict[str, Any]] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)


@dataclass
class AssignmentRecord:
    assignment_id: str
    teacher_id: str
    title: str
    due_date: str
    level: str
    status: AssignmentStatus
    assignment_type: AssignmentType = "basic"
    story_id: str | None = None
    story_content: str | None = None
    required_words: list[str] = field(default_factory=list)
    excluded_words: list[str] = field(default_factory=list)
    matching_words: list[str] = field(default_factory=list)
    blank_positions: list[dict[str, Any]] = field(default_factory=list)
    recipient_count: int = 0
    distributed_at: str | None = None
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)


@dataclass
class SubmissionRecord:
    submission_id: str
    assignment_id: str
    student_id: str
    teacher_id: str
    assignment_type: str
    answers: dict[str, Any]
    score: int
    max_score: int
    feedback: str
    time_spent_seconds: int = 0
    submitted_at: str = field(default_factory=utc_now_iso)


@dataclass
class SubmissionSummaryRecord:
    assignment_id: str
    teacher_id: str
    student_id: str
    student_name: str
    score: int | None
    unknown_words: list[str] = field(default_factory=list)
    submitted_at: str = field(default_factory=utc_now_iso)


@dataclass
class BadgeRecord:
    badge_id: str
    student_id: str
    badge_type: str
    title: str
    description: str
    icon: str
    progress: int
    target: int
    is_unlocked: bool
    achieved_at: str | None = None


@dataclass
class VocabularyProgressRecord:
    student_id: str
    date: str
    known_words: int
    learning_words: int
    unknown_words: int
    new_words_today: int


@dataclass
class QuizQuestionRecord:
    question_id: str
    story_id: str
    question: str
    options: list[str]
    correct_answer: str
    explanation: str


@dataclass
class NotificationRecord:
    notification_id: str
    recipient_id: str
    sender_id: str
    sender_name: str
    title: str
    message: str
    assignment_id: str | None = None
    is_read: bool = False
    created_at: str = field(default_factory=utc_now_iso)
