from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from wordnest.application.scoring import half_up_ratio, missed_fill_blank_words, score_submission
from wordnest.application.text_blanks import create_fill_blanks, extract_words_for_matching
from wordnest.domain.errors import NotFoundError, UnauthorizedError, ValidationError
from wordnest.domain.models import AssignmentRecord, SubmissionRecord, SubmissionSummaryRecord
from wordnest.domain.payloads import normalize_word_list
from wordnest.infra.db.store import DatabaseStore

logger = logging.getLogger(__name__)

ASSIGNMENT_TYPES = ("basic", "fill_blanks", "word_matching", "custom_words")
PASS_RATIO = 0.7
MIN_MATCHING_WORDS = 5
MIN_CUSTOM_WORDS = 5
MAX_CUSTOM_WORDS = 20


@dataclass
class SubmissionOutcome:
    submission: SubmissionRecord
    percentage: int
    passed: bool


@dataclass
class AssignmentAnalytics:
    assignment_id: str
    total_submissions: int
    completion_rate: int
    average_score: int
    pass_rate: int
    average_time_minutes: int
    struggling_student_ids: list[str] = field(default_factory=list)
    top_performer_ids: list[str] = field(default_factory=list)
    most_challenging_words: list[str] = field(default_factory=list)
    excellent_count: int = 0
    good_count: int = 0
    needs_improvement_count: int = 0


def _required(**values: Any) -> None:
    missing = [name for name, value in values.items() if not str(value or "").strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def _percentage(score: int, max_score: int) -> float:
    if max_score <= 0:
        return 0.0
    return score / max_score * 100


class AssignmentService:
    def __init__(self, *, store: DatabaseStore):
        self.store = store

    def _owned_assignment(self, assignment_id: str, teacher_id: str, action: str) -> AssignmentRecord:
        assignment = self.store.get_assignment(assignment_id)
        if assignment is None:
            raise NotFoundError(f"Assignment not found: {assignment_id}")
        if assignment.teacher_id != teacher_id:
            raise UnauthorizedError(f"You can only {action} your own assignments")
        return assignment

    def _story_content(self, story_id: str | None, assignment_type: str):
        if not story_id:
            raise ValidationError(f"storyId is required for {assignment_type} type")
        story = self.store.get_story(story_id)
        if story is None:
            raise NotFoundError(f"Story not found: {story_id}")
        return story

    def create_assignment(
        self,
        *,
        teacher_id: str,
        title: str,
        due_date: str,
        level: str,
        required_words: list[str] | None = None,
        excluded_words: list[str] | None = None,
        story_id: str | None = None,
    ) -> AssignmentRecord:
        _required(teacherId=teacher_id, title=title, dueDate=due_date, level=level)
        if self.store.get_teacher_profile(teacher_id) is None:
            raise NotFoundError("Teacher profile not found")

        return self.store.create_assignment(
            teacher_id=teacher_id,
            title=title.strip(),
            due_date=due_date,
            level=level,
            story_id=story_id,
            required_words=normalize_word_list(required_words),
            excluded_words=normalize_word_list(excluded_words),
        )

    def generate_assignment(
        self,
        *,
        teacher_id: str,
        title: str,
        assignment_type: str,
        level: str,
        due_date: str,
        story_id: str | None = None,
        words_to_remove: list[str] | None = None,
        number_of_words: int | None = None,
        custom_words: list[str] | None = None,
    ) -> AssignmentRecord:
        if assignment_type not in ASSIGNMENT_TYPES:
            raise ValidationError(f"Invalid assignment type: {assignment_type}")
        _required(teacherId=teacher_id, title=title, dueDate=due_date, level=level)

        fields: dict[str, Any] = {"story_id": story_id}
        if assignment_type == "basic":
            story = self._story_content(story_id, assignment_type)
            fields["story_content"] = story.content

        elif assignment_type == "fill_blanks":
            words = normalize_word_list(words_to_remove)
            if not story_id or not words:
                raise ValidationError("storyId and wordsToRemove are required for fill_blanks type")
            story = self._story_content(story_id, assignment_type)
            modified, positions = create_fill_blanks(story.content, words)
            blank_positions = [item.to_dict() for item in positions]
            fields.update(story_content=modified, blank_positions=blank_positions, required_words=words)
            self.store.set_story_blank_positions(story_id=story.story_id, blank_positions=blank_positions)

        elif assignment_type == "word_matching":
            story = self._story_content(story_id, assignment_type)
            words = extract_words_for_matching(story.content, story.highlighted_words, number_of_words or 10)
            if len(words) < MIN_MATCHING_WORDS:
                raise ValidationError(
                    f"Not enough words found for matching exercise (minimum {MIN_MATCHING_WORDS} required)"
                )
            fields.update(story_content=story.content, matching_words=words, required_words=words)

        else:
            words = normalize_word_list(custom_words)
            if not words:
                raise ValidationError("customWords are required for custom_words type")
            if not MIN_CUSTOM_WORDS <= len(words) <= MAX_CUSTOM_WORDS:
                raise ValidationError(
                    f"customWords must contain between {MIN_CUSTOM_WORDS} and {MAX_CUSTOM_WORDS} words"
                )
            fields.update(required_words=words, story_content=None)

        assignment = self.store.create_assignment(
            teacher_id=teacher_id,
            title=title.strip(),
            due_date=due_date,
            level=level,
            assignment_type=assignment_type,
            **fields,
        )
        logger.info("Created %s assignment %s for teacher %s", assignment_type, assignment.assignment_id, teacher_id)
        return assignment

    def list_for_teacher(self, teacher_id: str) -> list[AssignmentRecord]:
        return self.store.list_assignments_for_teacher(teacher_id)

    def distribute(
        self,
        *,
        assignment_id: str,
        teacher_id: str,
        student_ids: list[str] | None = None,
        class_id: str | None = None,
        send_to_all: bool = False,
    ) -> dict[str, Any]:
        assignment = self._owned_assignment(assignment_id, teacher_id, "distribute")

        if send_to_all and class_id:
            recipients = self.store.list_class_student_ids(teacher_id=teacher_id, class_id=class_id)
        elif student_ids:
            recipients = list(dict.fromkeys(normalize_word_list(student_ids)))
        else:
            raise ValidationError("Must provide either studentIds or set sendToAll with classId")
        if not recipients:
            raise ValidationError("No students found to send assignment to")

        teacher = self.store.get_teacher_profile(teacher_id)
        sender_name = teacher.name if teacher is not None else "Your Teacher"

        message = f"New assignment: {assignment.title}"
        if assignment.assignment_type == "fill_blanks":
            message += f" - Fill in {len(assignment.required_words)} missing words"
        elif assignment.assignment_type == "word_matching":
            message += f" - Match {len(assignment.matching_words)} words"
        elif assignment.assignment_type == "custom_words":
            message += " - Practice with custom vocabulary"
        message += f" | Due: {assignment.due_date}"

        notification_ids = [
            self.store.create_notification(
                recipient_id=student_id,
                sender_id=teacher_id,
                sender_name=sender_name,
                title=f"New Assignment: {assignment.title}",
                message=message,
                assignment_id=assignment_id,
            ).notification_id
            for student_id in recipients
        ]

        self.store.update_assignment(
            assignment_id,
            status="sent",
            distributed_at=datetime.now(timezone.utc),
            recipient_count=len(recipients),
        )
        return {
            "success": True,
            "assignmentId": assignment_id,
            "recipientCount": len(recipients),
            "notificationIds": notification_ids,
        }

    def submit(
        self,
        *,
        assignment_id: str,
        student_id: str,
        answers: Any,
        time_spent_seconds: int | None = None,
    ) -> SubmissionOutcome:
        _required(assignmentId=assignment_id, studentId=student_id)
        assignment = self.store.get_assignment(assignment_id)
        if assignment is None:
            raise NotFoundError(f"Assignment not found: {assignment_id}")

        profile = self.store.get_student_profile(student_id)
        student_name = profile.name if profile is not None else "Student"

        result = score_submission(assignment.assignment_type, answers, required_words=assignment.required_words)
        submission = self.store.create_submission(
            assignment_id=assignment_id,
            student_id=student_id,
            teacher_id=assignment.teacher_id,
            assignment_type=assignment.assignment_type,
            answers=answers if isinstance(answers, dict) else {},
            score=result.score,
            max_score=result.max_score,
            feedback=result.feedback,
            time_spent_seconds=max(0, int(time_spent_seconds or 0)),
        )
        self.store.update_assignment(assignment_id, status="submitted")

        missed = missed_fill_blank_words(answers) if assignment.assignment_type == "fill_blanks" else []
        self.store.create_submission_summary(
            SubmissionSummaryRecord(
                assignment_id=assignment_id,
                teacher_id=assignment.teacher_id,
                student_id=student_id,
                student_name=student_name,
                score=result.score,
                unknown_words=missed,
            )
        )

        return SubmissionOutcome(
            submission=submission,
            percentage=half_up_ratio(result.score, result.max_score),
            passed=result.score >= result.max_score * PASS_RATIO,
        )

    def analytics(self, *, assignment_id: str, teacher_id: str) -> AssignmentAnalytics:
        assignment = self._owned_assignment(assignment_id, teacher_id, "view analytics for")
        submissions = self.store.list_submissions_for_assignment(assignment_id)

        total = len(submissions)
        total_score = sum(item.score for item in submissions)
        total_max = sum(item.max_score for item in submissions)
        total_time = sum(item.time_spent_seconds for item in submissions)

        # Latest submission per student wins.
        student_scores: dict[str, float] = {}
        passed = 0
        for item in submissions:
            percentage = _percentage(item.score, item.max_score)
            if percentage >= PASS_RATIO * 100:
                passed += 1
            student_scores[item.student_id] = percentage

        summaries = self.store.list_submission_summaries(teacher_id=teacher_id, assignment_id=assignment_id)
        frequency = Counter(word for summary in summaries for word in summary.unknown_words)

        scores = list(student_scores.values())
        return AssignmentAnalytics(
            assignment_id=assignment_id,
            total_submissions=total,
            completion_rate=half_up_ratio(total, assignment.recipient_count),
            average_score=half_up_ratio(total_score, total_max),
            pass_rate=half_up_ratio(passed, total),
            average_time_minutes=half_up_ratio(total_time, total * 60, scale=1),
            struggling_student_ids=[sid for sid, score in student_scores.items() if score < 70],
            top_performer_ids=[sid for sid, score in student_scores.items() if score >= 90],
            most_challenging_words=[word for word, _ in frequency.most_common(5)],
            excellent_count=sum(1 for score in scores if score >= 90),
            good_count=sum(1 for score in scores if 70 <= score < 90),
            needs_improvement_count=sum(1 for score in scores if score < 70),
        )
