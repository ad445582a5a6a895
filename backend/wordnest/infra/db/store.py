from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from wordnest.domain.models import (
    AssignmentRecord,
    BadgeRecord,
    JobEventRecord,
    JobRecord,
    NotificationRecord,
    QuizQuestionRecord,
    StoryRecord,
    StudentProfileRecord,
    SubmissionRecord,
    SubmissionSummaryRecord,
    TeacherProfileRecord,
    VocabularyProgressRecord,
    WordRecord,
)
from wordnest.infra.db.models import (
    AssignmentRow,
    AssignmentSubmissionRow,
    BadgeRow,
    GenerationJobEventRow,
    GenerationJobRow,
    NotificationRow,
    QuizQuestionRow,
    StoryRow,
    StudentClassRow,
    StudentProfileRow,
    SubmissionSummaryRow,
    TeacherProfileRow,
    VocabularyProgressRow,
    WordRow,
)
from wordnest.infra.db.session import get_session_factory
from wordnest.utils.ids import (
    ASSIGNMENT_PREFIX,
    JOB_PREFIX,
    NOTIFICATION_PREFIX,
    STORY_PREFIX,
    SUBMISSION_PREFIX,
    WORD_PREFIX,
    new_public_id,
    quiz_question_ids,
)

DEFAULT_STUDENT_NAME = "New Learner"
DEFAULT_STUDENT_LEVEL = "A1"

_ASSIGNMENT_FIELDS = {
    "title",
    "due_date",
    "level",
    "status",
    "assignment_type",
    "story_id",
    "story_content",
    "required_words",
    "excluded_words",
    "matching_words",
    "blank_positions",
    "recipient_count",
    "distributed_at",
}
_PROFILE_FIELDS = {"name", "email", "level", "streak", "vocabulary_count", "last_active_date"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def fallback_student_email(student_id: str) -> str:
    return f"{student_id}@students.wordnest.local"


class DatabaseStore:
    """Persistence layer backed by SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory or get_session_factory()

    @staticmethod
    def _to_job_record(row: GenerationJobRow) -> JobRecord:
        return JobRecord(
            job_id=row.public_id,
            user_id=row.user_id,
            job_type=row.job_type,  # type: ignore[arg-type]
            status=row.status,  # type: ignore[arg-type]
            input=dict(row.input_json or {}),
            result=dict(row.result_json) if row.result_json is not None else None,
            error=row.error,
            started_at=_iso(row.started_at) or _now().isoformat(),
            completed_at=_iso(row.completed_at),
        )

    @staticmethod
    def _to_student_record(row: StudentProfileRow) -> StudentProfileRecord:
        return StudentProfileRecord(
            student_id=row.public_id,
            name=row.name,
            email=row.email,
            level=row.level,
            streak=row.streak,
            vocabulary_count=row.vocabulary_count,
            last_active_date=row.last_active_date,
            created_at=_iso(row.created_at) or _now().isoformat(),
            updated_at=_iso(row.updated_at) or _iso(row.created_at) or _now().isoformat(),
        )

    @staticmethod
    def _to_teacher_record(row: TeacherProfileRow) -> TeacherProfileRecord:
        return TeacherProfileRecord(
            teacher_id=row.public_id,
            name=row.name,
            email=row.email,
            school=row.school,
            created_at=_iso(row.created_at) or _now().isoformat(),
        )

    @staticmethod
    def _to_word_record(row: WordRow) -> WordRecord:
        return WordRecord(
            word_id=row.public_id,
            student_id=row.student_id,
            text=row.text,
            translation=row.translation,
            mastery=row.mastery,  # type: ignore[arg-type]
            example_sentence=row.example_sentence,
            last_reviewed_at=_iso(row.last_reviewed_at),
            created_at=_iso(row.created_at) or _now().isoformat(),
            updated_at=_iso(row.updated_at) or _iso(row.created_at) or _now().isoformat(),
        )

    @staticmethod
    def _to_story_record(row: StoryRow) -> StoryRecord:
        return StoryRecord(
            story_id=row.public_id,
            title=row.title,
            content=row.content,
            level=row.level,
            student_id=row.student_id,
            teacher_id=row.teacher_id,
            mode=row.mode,  # type: ignore[arg-type]
            unknown_word_ids=[str(item) for item in row.unknown_word_ids or []],
            highlighted_words=list(row.highlighted_words or []),
            blank_positions=list(row.blank_positions or []),
            created_at=_iso(row.created_at) or _now().isoformat(),
            updated_at=_iso(row.updated_at) or _iso(row.created_at) or _now().isoformat(),
        )

    @staticmethod
    def _to_assignment_record(row: AssignmentRow) -> AssignmentRecord:
        return AssignmentRecord(
            assignment_id=row.public_id,
            teacher_id=row.teacher_id,
            title=row.title,
            due_date=row.due_date,
            level=row.level,
            status=row.status,  # type: ignore[arg-type]
            assignment_type=row.assignment_type,  # type: ignore[arg-type]
            story_id=row.story_id,
            story_content=row.story_content,
            required_words=list(row.required_words or []),
            excluded_words=list(row.excluded_words or []),
            matching_words=list(row.matching_words or []),
            blank_positions=list(row.blank_positions or []),
            recipient_count=row.recipient_count or 0,
            distributed_at=_iso(row.distributed_at),
            created_at=_iso(row.created_at) or _now().isoformat(),
            updated_at=_iso(row.updated_at) or _iso(row.created_at) or _now().isoformat(),
        )

    @staticmethod
    def _to_submission_record(row: AssignmentSubmissionRow) -> SubmissionRecord:
        return SubmissionRecord(
            submission_id=row.public_id,
            assignment_id=row.assignment_id,
            student_id=row.student_id,
            teacher_id=row.teacher_id,
            assignment_type=row.assignment_type,
            answers=dict(row.answers or {}),
            score=row.score,
            max_score=row.max_score,
            feedback=row.feedback,
            time_spent_seconds=row.time_spent_seconds or 0,
            submitted_at=_iso(row.submitted_at) or _now().isoformat(),
        )

    @staticmethod
    def _to_summary_record(row: SubmissionSummaryRow) -> SubmissionSummaryRecord:
        return SubmissionSummaryRecord(
            assignment_id=row.assignment_id,
            teacher_id=row.teacher_id,
            student_id=row.student_id,
            student_name=row.student_name,
            score=row.score,
            unknown_words=list(row.unknown_words or []),
            submitted_at=_iso(row.submitted_at) or _now().isoformat(),
        )

    @staticmethod
    def _to_badge_record(row: BadgeRow) -> BadgeRecord:
        return BadgeRecord(
            badge_id=row.public_id,
            student_id=row.student_id,
            badge_type=row.badge_type,
            title=row.title,
            description=row.description,
            icon=row.icon,
            progress=row.progress,
            target=row.target,
            is_unlocked=bool(row.is_unlocked),
            achieved_at=_iso(row.achieved_at),
        )

    @staticmethod
    def _to_progress_record(row: VocabularyProgressRow) -> VocabularyProgressRecord:
        return VocabularyProgressRecord(
            student_id=row.student_id,
            date=row.date,
            known_words=row.known_words,
            learning_words=row.learning_words,
            unknown_words=row.unknown_words,
            new_words_today=row.new_words_today,
        )

    @staticmethod
    def _to_quiz_record(row: QuizQuestionRow, story_public_id: str) -> QuizQuestionRecord:
        return QuizQuestionRecord(
            question_id=row.public_id,
            story_id=story_public_id,
            question=row.question,
            options=[str(item) for item in row.options or []],
            correct_answer=row.correct_answer,
            explanation=row.explanation,
        )

    @staticmethod
    def _to_notification_record(row: NotificationRow) -> NotificationRecord:
        return NotificationRecord(
            notification_id=row.public_id,
            recipient_id=row.recipient_id,
            sender_id=row.sender_id,
            sender_name=row.sender_name,
            title=row.title,
            message=row.message,
            assignment_id=row.assignment_id,
            is_read=bool(row.is_read),
            created_at=_iso(row.created_at) or _now().isoformat(),
        )

    @staticmethod
    def _append_job_event(*, db, job_row_id: int, status: str) -> None:
        db.add(GenerationJobEventRow(job_id=job_row_id, status=status, created_at=_now()))

    # Generation jobs

    def create_job(self, *, user_id: str, job_type: str, input_payload: dict[str, Any]) -> JobRecord:
        with self._session_factory() as db:
            row = GenerationJobRow(
                public_id=new_public_id(JOB_PREFIX),
                user_id=user_id,
                job_type=job_type,
                status="pending",
                input_json=dict(input_payload),
                started_at=_now(),
            )
            db.add(row)
            db.flush()
            self._append_job_event(db=db, job_row_id=row.id, status="pending")
            db.commit()
            return self._to_job_record(row)

    def get_job(self, job_id: str) -> JobRecord | None:
        with self._session_factory() as db:
            row = db.execute(select(GenerationJobRow).where(GenerationJobRow.public_id == job_id)).scalar_one_or_none()
            if row is None:
                return None
            return self._to_job_record(row)

    def list_jobs(self, *, status: str | None = None, limit: int | None = None) -> list[JobRecord]:
        """Jobs in insertion order, optionally filtered by status."""
        stmt = select(GenerationJobRow).order_by(GenerationJobRow.id.asc())
        if status is not None:
            stmt = stmt.where(GenerationJobRow.status == status)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session_factory() as db:
            return [self._to_job_record(row) for row in db.execute(stmt).scalars()]

    def list_job_events(self, job_id: str) -> list[JobEventRecord]:
        with self._session_factory() as db:
            row = db.execute(select(GenerationJobRow).where(GenerationJobRow.public_id == job_id)).scalar_one_or_none()
            if row is None:
                return []

            event_rows = (
                db.execute(
                    select(GenerationJobEventRow)
                    .where(GenerationJobEventRow.job_id == row.id)
                    .order_by(GenerationJobEventRow.created_at.asc(), GenerationJobEventRow.id.asc())
                )
                .scalars()
                .all()
            )
            return [
                JobEventRecord(
                    job_id=row.public_id,
                    status=item.status,  # type: ignore[arg-type]
                    created_at=_iso(item.created_at) or _now().isoformat(),
                )
                for item in event_rows
            ]

    def _transition_job(self, *, job_id: str, from_status: str, values: dict[str, Any]) -> bool:
        with self._session_factory() as db:
            job_row_id = db.execute(
                select(GenerationJobRow.id).where(GenerationJobRow.public_id == job_id)
            ).scalar_one_or_none()
            if job_row_id is None:
                return False

            result = db.execute(
                update(GenerationJobRow)
                .where(GenerationJobRow.id == job_row_id, GenerationJobRow.status == from_status)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                return False

            self._append_job_event(db=db, job_row_id=job_row_id, status=values["status"])
            db.commit()
            return True

    def claim_job(self, job_id: str) -> bool:
        """Move a job from ``pending`` to ``processing``; False if it was not pending."""
        return self._transition_job(job_id=job_id, from_status="pending", values={"status": "processing"})

    def complete_job(self, *, job_id: str, result: dict[str, Any], error: str | None = None) -> bool:
        return self._transition_job(
            job_id=job_id,
            from_status="processing",
            values={
                "status": "completed",
                "result_json": result,
                "error": error,
                "completed_at": _now(),
            },
        )

    def fail_job(self, *, job_id: str, error_message: str) -> bool:
        return self._transition_job(
            job_id=job_id,
            from_status="processing",
            values={
                "status": "failed",
                "error": error_message,
                "completed_at": _now(),
            },
        )

    # Profiles

    def get_student_profile(self, student_id: str) -> StudentProfileRecord | None:
        with self._session_factory() as db:
            row = db.execute(
                select(StudentProfileRow).where(StudentProfileRow.public_id == student_id)
            ).scalar_one_or_none()
            if row is None:
                return None
            return self._to_student_record(row)

    def ensure_student_profile(self, student_id: str) -> tuple[StudentProfileRecord, bool]:
        """Return the profile, creating the default one on first use."""
        with self._session_factory() as db:
            row = db.execute(
                select(StudentProfileRow).where(StudentProfileRow.public_id == student_id)
            ).scalar_one_or_none()
            if row is not None:
                return self._to_student_record(row), False

            row = StudentProfileRow(
                public_id=student_id,
                name=DEFAULT_STUDENT_NAME,
                email=fallback_student_email(student_id),
                level=DEFAULT_STUDENT_LEVEL,
                streak=0,
                vocabulary_count=0,
            )
            db.add(row)
            db.commit()
            return self._to_student_record(row), True

    def create_student_profile(
        self,
        *,
        student_id: str,
        name: str,
        email: str | None = None,
        level: str = DEFAULT_STUDENT_LEVEL,
    ) -> StudentProfileRecord:
        with self._session_factory() as db:
            row = StudentProfileRow(
                public_id=student_id,
                name=name,
                email=email or fallback_student_email(student_id),
                level=level,
                streak=0,
                vocabulary_count=0,
            )
            db.add(row)
            db.commit()
            return self._to_student_record(row)

    def update_student_profile(self, student_id: str, **fields: Any) -> StudentProfileRecord | None:
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)}")

        with self._session_factory() as db:
            row = db.execute(
                select(StudentProfileRow).where(StudentProfileRow.public_id == student_id)
            ).scalar_one_or_none()
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            db.commit()
            return self._to_student_record(row)

    def refresh_vocabulary_count(self, student_id: str) -> int:
        """Recount words whose mastery is not ``unknown`` and store it on the profile."""
        with self._session_factory() as db:
            mastered = db.execute(
                select(func.count(WordRow.id)).where(WordRow.student_id == student_id, WordRow.mastery != "unknown")
            ).scalar_one()
            row = db.execute(
                select(StudentProfileRow).where(StudentProfileRow.public_id == student_id)
            ).scalar_one_or_none()
            if row is not None and row.vocabulary_count != mastered:
                row.vocabulary_count = mastered
                db.commit()
            return int(mastered)

    def create_teacher_profile(
        self,
        *,
        teacher_id: str,
        name: str,
        email: str,
        school: str | None = None,
    ) -> TeacherProfileRecord:
        with self._session_factory() as db:
            row = TeacherProfileRow(public_id=teacher_id, name=name, email=email, school=school)
            db.add(row)
            db.commit()
            return self._to_teacher_record(row)

    def get_teacher_profile(self, teacher_id: str) -> TeacherProfileRecord | None:
        with self._session_factory() as db:
            row = db.execute(
                select(TeacherProfileRow).where(TeacherProfileRow.public_id == teacher_id)
            ).scalar_one_or_none()
            if row is None:
                return None
            return self._to_teacher_record(row)

    def add_student_to_class(self, *, teacher_id: str, class_id: str, student_id: str) -> None:
        with self._session_factory() as db:
            db.add(StudentClassRow(teacher_id=teacher_id, class_id=class_id, student_id=student_id))
            db.commit()

    def list_class_student_ids(self, *, teacher_id: str, class_id: str) -> list[str]:
        with self._session_factory() as db:
            rows = (
                db.execute(
                    select(StudentClassRow.student_id)
                    .where(StudentClassRow.teacher_id == teacher_id, StudentClassRow.class_id == class_id)
                    .order_by(StudentClassRow.id.asc())
                )
                .scalars()
                .all()
            )
            return list(dict.fromkeys(rows))

    # Words

    def list_words_for_student(self, student_id: str, *, limit: int = 500) -> list[WordRecord]:
        with self._session_factory() as db:
            rows = (
                db.execute(
                    select(WordRow).where(WordRow.student_id == student_id).order_by(WordRow.id.asc()).limit(limit)
                )
                .scalars()
                .all()
            )
            return [self._to_word_record(row) for row in rows]

    def create_word(
        self,
        *,
        student_id: str,
        text: str,
        translation: str,
        example_sentence: str | None = None,
        mastery: str = "unknown",
    ) -> WordRecord:
        with self._session_factory() as db:
            row = WordRow(
                public_id=new_public_id(WORD_PREFIX),
                student_id=student_id,
                text=text,
                translation=translation,
                example_sentence=example_sentence,
                mastery=mastery,
            )
            db.add(row)
            db.commit()
            return self._to_word_record(row)

    def get_word(self, word_id: str) -> WordRecord | None:
        with self._session_factory() as db:
            row = db.execute(select(WordRow).where(WordRow.public_id == word_id)).scalar_one_or_none()
            if row is None:
                return None
            return self._to_word_record(row)

    def update_word_mastery(self, *, word_id: str, mastery: str) -> WordRecord | None:
        with self._session_factory() as db:
            row = db.execute(select(WordRow).where(WordRow.public_id == word_id)).scalar_one_or_none()
            if row is None:
                return None
            row.mastery = mastery
            row.last_reviewed_at = _now()
            db.commit()
            return self._to_word_record(row)

    # Stories

    def create_story(
        self,
        *,
        title: str,
        content: str,
        level: str,
        student_id: str | None = None,
        teacher_id: str | None = None,
        mode: str | None = None,
        unknown_word_ids: list[str] | None = None,
        highlighted_words: list[dict[str, Any]] | None = None,
    ) -> StoryRecord:
        with self._session_factory() as db:
            row = StoryRow(
                public_id=new_public_id(STORY_PREFIX),
                student_id=student_id,
                teacher_id=teacher_id,
                title=title,
                content=content,
                level=level,
                mode=mode,
                unknown_word_ids=list(unknown_word_ids or []),
                highlighted_words=list(highlighted_words or []),
                blank_positions=[],
                created_at=_now(),
            )
            db.add(row)
            db.commit()
            return self._to_story_record(row)

    def get_story(self, story_id: str) -> StoryRecord | None:
        with self._session_factory() as db:
            row = db.execute(select(StoryRow).where(StoryRow.public_id == story_id)).scalar_one_or_none()
            if row is None:
                return None
            return self._to_story_record(row)

    def list_stories_for_student(self, student_id: str, *, limit: int | None = None) -> list[StoryRecord]:
        with self._session_factory() as db:
            stmt = (
                select(StoryRow)
                .where(StoryRow.student_id == student_id)
                .order_by(StoryRow.created_at.desc(), StoryRow.id.desc())
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            rows = db.execute(stmt).scalars().all()
            return [self._to_story_record(row) for row in rows]

    def set_story_blank_positions(self, *, story_id: str, blank_positions: list[dict[str, Any]]) -> bool:
        with self._session_factory() as db:
            row = db.execute(select(StoryRow).where(StoryRow.public_id == story_id)).scalar_one_or_none()
            if row is None:
                return False
            row.blank_positions = list(blank_positions)
            db.commit()
            return True

    def delete_stories(self, story_ids: list[str]) -> int:
        """Delete stories and, through the cascade, their quiz questions."""
        if not story_ids:
            return 0
        with self._session_factory() as db:
            rows = db.execute(select(StoryRow).where(StoryRow.public_id.in_(story_ids))).scalars().all()
            for row in rows:
                db.delete(row)
            db.commit()
            return len(rows)

    def create_quiz_questions(self, *, story_id: str, questions: list[dict[str, Any]]) -> list[QuizQuestionRecord]:
        with self._session_factory() as db:
            story_row = db.execute(select(StoryRow).where(StoryRow.public_id == story_id)).scalar_one_or_none()
            if story_row is None:
                return []

            rows: list[QuizQuestionRow] = []
            for question_id, item in zip(quiz_question_ids(len(questions)), questions):
                row = QuizQuestionRow(
                    public_id=question_id,
                    story_id=story_row.id,
                    question=str(item.get("question") or ""),
                    options=[str(option) for option in item.get("options") or []],
                    correct_answer=str(item.get("correctAnswer") or ""),
                    explanation=str(item.get("explanation") or ""),
                )
                db.add(row)
                rows.append(row)
            db.commit()
            return [self._to_quiz_record(row, story_row.public_id) for row in rows]

    def count_quiz_questions(self, story_id: str) -> int:
        with self._session_factory() as db:
            return int(
                db.execute(
                    select(func.count(QuizQuestionRow.id))
                    .join(StoryRow, QuizQuestionRow.story_id == StoryRow.id)
                    .where(StoryRow.public_id == story_id)
                ).scalar_one()
            )

    # Assignments

    def create_assignment(
        self,
        *,
        teacher_id: str,
        title: str,
        due_date: str,
        level: str,
        assignment_type: str = "basic",
        status: str = "draft",
        story_id: str | None = None,
        story_content: str | None = None,
        required_words: list[str] | None = None,
        excluded_words: list[str] | None = None,
        matching_words: list[str] | None = None,
        blank_positions: list[dict[str, Any]] | None = None,
    ) -> AssignmentRecord:
        with self._session_factory() as db:
            row = AssignmentRow(
                public_id=new_public_id(ASSIGNMENT_PREFIX),
                teacher_id=teacher_id,
                title=title,
                due_date=due_date,
                level=level,
                status=status,
                assignment_type=assignment_type,
                story_id=story_id,
                story_content=story_content,
                required_words=list(required_words or []),
                excluded_words=list(excluded_words or []),
                matching_words=list(matching_words or []),
                blank_positions=list(blank_positions or []),
                recipient_count=0,
            )
            db.add(row)
            db.commit()
            return self._to_assignment_record(row)

    def get_assignment(self, assignment_id: str) -> AssignmentRecord | None:
        with self._session_factory() as db:
            row = db.execute(select(AssignmentRow).where(AssignmentRow.public_id == assignment_id)).scalar_one_or_none()
            if row is None:
                return None
            return self._to_assignment_record(row)

    def list_assignments_for_teacher(self, teacher_id: str, *, limit: int = 200) -> list[AssignmentRecord]:
        with self._session_factory() as db:
            rows = (
                db.execute(
                    select(AssignmentRow)
                    .where(AssignmentRow.teacher_id == teacher_id)
                    .order_by(AssignmentRow.due_date.asc(), AssignmentRow.id.asc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [self._to_assignment_record(row) for row in rows]

    def update_assignment(self, assignment_id: str, **fields: Any) -> AssignmentRecord | None:
        unknown = set(fields) - _ASSIGNMENT_FIELDS
        if unknown:
            raise ValueError(f"Unknown assignment fields: {sorted(unknown)}")

        with self._session_factory() as db:
            row = db.execute(select(AssignmentRow).where(AssignmentRow.public_id == assignment_id)).scalar_one_or_none()
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            db.commit()
            return self._to_assignment_record(row)

    def create_submission(
        self,
        *,
        assignment_id: str,
        student_id: str,
        teacher_id: str,
        assignment_type: str,
        answers: dict[str, Any],
        score: int,
        max_score: int,
        feedback: str,
        time_spent_seconds: int,
    ) -> SubmissionRecord:
        with self._session_factory() as db:
            row = AssignmentSubmissionRow(
                public_id=new_public_id(SUBMISSION_PREFIX),
                assignment_id=assignment_id,
                student_id=student_id,
                teacher_id=teacher_id,
                assignment_type=assignment_type,
                answers=dict(answers),
                score=score,
                max_score=max_score,
                feedback=feedback,
                time_spent_seconds=time_spent_seconds,
                submitted_at=_now(),
            )
            db.add(row)
            db.commit()
            return self._to_submission_record(row)

    def list_submissions_for_assignment(self, assignment_id: str, *, limit: int = 1000) -> list[SubmissionRecord]:
        with self._session_factory() as db:
            rows = (
                db.execute(
                    select(AssignmentSubmissionRow)
                    .where(AssignmentSubmissionRow.assignment_id == assignment_id)
                    .order_by(AssignmentSubmissionRow.id.asc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [self._to_submission_record(row) for row in rows]

    def list_submissions_for_student(self, student_id: str) -> list[SubmissionRecord]:
        with self._session_factory() as db:
            rows = (
                db.execute(
                    select(AssignmentSubmissionRow)
                    .where(AssignmentSubmissionRow.student_id == student_id)
                    .order_by(AssignmentSubmissionRow.id.asc())
                )
                .scalars()
                .all()
            )
            return [self._to_submission_record(row) for row in rows]

    def create_submission_summary(self, record: SubmissionSummaryRecord) -> None:
        with self._session_factory() as db:
            db.add(
                SubmissionSummaryRow(
                    assignment_id=record.assignment_id,
                    teacher_id=record.teacher_id,
                    student_id=record.student_id,
                    student_name=record.student_name,
                    score=record.score,
                    unknown_words=list(record.unknown_words),
                    submitted_at=_now(),
                )
            )
            db.commit()

    def list_submission_summaries(
        self, *, teacher_id: str, assignment_id: str | None = None, limit: int = 100
    ) -> list[SubmissionSummaryRecord]:
        with self._session_factory() as db:
            stmt = select(SubmissionSummaryRow).where(SubmissionSummaryRow.teacher_id == teacher_id)
            if assignment_id:
                stmt = stmt.where(SubmissionSummaryRow.assignment_id == assignment_id)
            stmt = stmt.order_by(SubmissionSummaryRow.id.asc()).limit(limit)
            rows = db.execute(stmt).scalars().all()
            return [self._to_summary_record(row) for row in rows]

    # Notifications

    def create_notification(
        self,
        *,
        recipient_id: str,
        sender_id: str,
        sender_name: str,
        title: str,
        message: str,
        assignment_id: str | None,
    ) -> NotificationRecord:
        with self._session_factory() as db:
            row = NotificationRow(
                public_id=new_public_id(NOTIFICATION_PREFIX),
                recipient_id=recipient_id,
                sender_id=sender_id,
                sender_name=sender_name,
                notification_type="assignment",
                title=title,
                message=message,
                assignment_id=assignment_id,
                is_read=False,
                created_at=_now(),
            )
            db.add(row)
            db.commit()
            return self._to_notification_record(row)

    def list_notifications(self, recipient_id: str) -> list[NotificationRecord]:
        with self._session_factory() as db:
            rows = (
                db.execute(
                    select(NotificationRow)
                    .where(NotificationRow.recipient_id == recipient_id)
                    .order_by(NotificationRow.created_at.desc(), NotificationRow.id.desc())
                )
                .scalars()
                .all()
            )
            return [self._to_notification_record(row) for row in rows]

    # Badges and progress

    def list_badges(self, student_id: str) -> list[BadgeRecord]:
        with self._session_factory() as db:
            rows = (
                db.execute(select(BadgeRow).where(BadgeRow.student_id == student_id).order_by(BadgeRow.id.asc()))
                .scalars()
                .all()
            )
            return [self._to_badge_record(row) for row in rows]

    def upsert_badge(self, record: BadgeRecord) -> BadgeRecord:
        with self._session_factory() as db:
            row = db.execute(select(BadgeRow).where(BadgeRow.public_id == record.badge_id)).scalar_one_or_none()
            if row is None:
                row = BadgeRow(public_id=record.badge_id, student_id=record.student_id)
                db.add(row)
            row.badge_type = record.badge_type
            row.title = record.title
            row.description = record.description
            row.icon = record.icon
            row.progress = record.progress
            row.target = record.target
            row.is_unlocked = record.is_unlocked
            row.achieved_at = datetime.fromisoformat(record.achieved_at) if record.achieved_at else None
            db.commit()
            return self._to_badge_record(row)

    def get_vocabulary_progress(self, *, student_id: str, date: str) -> VocabularyProgressRecord | None:
        with self._session_factory() as db:
            row = db.execute(
                select(VocabularyProgressRow).where(
                    VocabularyProgressRow.student_id == student_id,
                    VocabularyProgressRow.date == date,
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            return self._to_progress_record(row)

    def upsert_vocabulary_progress(self, record: VocabularyProgressRecord) -> VocabularyProgressRecord:
        public_id = f"{record.student_id}-{record.date}"
        with self._session_factory() as db:
            row = db.execute(
                select(VocabularyProgressRow).where(VocabularyProgressRow.public_id == public_id)
            ).scalar_one_or_none()
            if row is None:
                row = VocabularyProgressRow(public_id=public_id, student_id=record.student_id, date=record.date)
                db.add(row)
            row.known_words = record.known_words
            row.learning_words = record.learning_words
            row.unknown_words = record.unknown_words
            row.new_words_today = record.new_words_today
            db.commit()
            return self._to_progress_record(row)
