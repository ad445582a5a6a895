from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from wordnest.api.v1.dependencies import (
    get_broker,
    get_store,
    provide_assignment_service,
    provide_badge_service,
    provide_broker,
    provide_job_service,
    provide_store,
    provide_story_service,
    provide_vocabulary_service,
)
from wordnest.api.v1.schemas.assignment import (
    AnalyticsResponse,
    AssignmentCreateRequest,
    AssignmentGenerateRequest,
    AssignmentListResponse,
    AssignmentView,
    DistributeRequest,
    DistributeResponse,
    SubmissionRequest,
    SubmissionResponse,
)
from wordnest.api.v1.schemas.job import (
    JobAcceptedResponse,
    JobDetailResponse,
    JobEventItem,
    JobEventListResponse,
    TranslationJobRequest,
)
from wordnest.api.v1.schemas.story import (
    AdjustDifficultyRequest,
    AdjustDifficultyResponse,
    QuizQuestionItem,
    QuizResponse,
    StoryCleanupResponse,
    StoryGenerationResponse,
    StoryListResponse,
    StoryRequest,
    StoryView,
    WordView,
    coerce_story_payload,
)
from wordnest.api.v1.schemas.student import (
    BadgeCheckResponse,
    BadgeView,
    ClassMemberRequest,
    ClassMembersResponse,
    DashboardResponse,
    NotificationListResponse,
    NotificationView,
    ProgressResponse,
    StudentProfileView,
    TeacherCreateRequest,
    TeacherView,
    WordMasteryRequest,
)
from wordnest.application.assignments import AssignmentService
from wordnest.application.badges import BadgeService
from wordnest.application.jobs import JobSubmissionService
from wordnest.application.stories import StoryService
from wordnest.application.views import story_view, word_view
from wordnest.application.vocabulary import VocabularyService
from wordnest.core.config import get_settings
from wordnest.domain.errors import NotFoundError, UnauthorizedError, ValidationError
from wordnest.domain.models import TERMINAL_JOB_STATUSES, AssignmentRecord, BadgeRecord, JobRecord
from wordnest.domain.payloads import StoryJobInput
from wordnest.infra.db.store import DatabaseStore
from wordnest.infra.pubsub.broker import InMemoryResultBroker, connection_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["v1"])

_SUBSCRIBE_POLL_SECONDS = 1.0
# Upper bound on how long one socket may wait for a job to finish.
_SUBSCRIBE_MAX_SECONDS = 900.0


def _http_error(exc: ValueError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, UnauthorizedError):
        return HTTPException(status_code=403, detail=str(exc))
    return HTTPException(status_code=422, detail=str(exc))


def _job_event(job: JobRecord) -> dict[str, Any]:
    """Published-event shape of a job's persisted state."""
    if job.status not in TERMINAL_JOB_STATUSES:
        return connection_payload(job.job_id, job.job_type)

    error = job.error if job.status == "failed" else None
    result = job.result or {}
    if job.job_type == "translation":
        return {"jobId": job.job_id, "status": job.status, "translation": job.result, "error": error}
    return {
        "jobId": job.job_id,
        "status": job.status,
        "story": result.get("story"),
        "newWords": result.get("newWords") or [],
        "error": error,
    }


def _assignment_view(item: AssignmentRecord) -> AssignmentView:
    return AssignmentView(
        id=item.assignment_id,
        teacherId=item.teacher_id,
        title=item.title,
        assignmentType=item.assignment_type,
        dueDate=item.due_date,
        level=item.level,
        status=item.status,
        storyId=item.story_id,
        storyContent=item.story_content,
        requiredWords=item.required_words,
        excludedWords=item.excluded_words,
        matchingWords=item.matching_words,
        blankPositions=item.blank_positions,
        recipientCount=item.recipient_count,
        distributedAt=item.distributed_at,
        createdAt=item.created_at,
    )


def _badge_view(item: BadgeRecord) -> BadgeView:
    return BadgeView(
        id=item.badge_id,
        type=item.badge_type,
        title=item.title,
        description=item.description,
        icon=item.icon,
        progress=item.progress,
        target=item.target,
        isUnlocked=item.is_unlocked,
        achievedAt=item.achieved_at,
    )


# Generation jobs


@router.post("/translations/jobs", response_model=JobAcceptedResponse)
async def submit_translation_job(
    payload: TranslationJobRequest,
    userId: str | None = Header(default=None, alias="X-User-Id"),
    service: JobSubmissionService = Depends(provide_job_service),
):
    try:
        data = service.submit_translation(
            user_id=userId,
            word=payload.word,
            target_language=payload.targetLanguage,
            source_language=payload.sourceLanguage,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return JobAcceptedResponse(**data)


@router.post("/stories/jobs", response_model=JobAcceptedResponse)
async def submit_story_job(
    payload: StoryRequest,
    userId: str | None = Header(default=None, alias="X-User-Id"),
    service: JobSubmissionService = Depends(provide_job_service),
):
    try:
        data = service.submit_story(user_id=userId, request=coerce_story_payload(payload))
    except ValueError as exc:
        raise _http_error(exc) from exc
    return JobAcceptedResponse(**data)


@router.get("/jobs/{jobId}", response_model=JobDetailResponse)
async def get_job(jobId: str, store: DatabaseStore = Depends(provide_store)):
    job = store.get_job(jobId)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    return JobDetailResponse(
        id=job.job_id,
        userId=job.user_id,
        type=job.job_type,
        status=job.status,
        input=job.input,
        result=job.result,
        error=job.error,
        startedAt=job.started_at,
        completedAt=job.completed_at,
    )


@router.get("/jobs/{jobId}/events", response_model=JobEventListResponse)
async def get_job_events(jobId: str, store: DatabaseStore = Depends(provide_store)):
    if store.get_job(jobId) is None:
        raise HTTPException(status_code=404, detail="Job not found")

    items = [JobEventItem(status=item.status, createdAt=item.created_at) for item in store.list_job_events(jobId)]
    return JobEventListResponse(jobId=jobId, events=items)


@router.get("/jobs/{jobId}/result")
async def get_job_result(
    jobId: str,
    store: DatabaseStore = Depends(provide_store),
    broker: InMemoryResultBroker = Depends(provide_broker),
) -> dict[str, Any]:
    job = store.get_job(jobId)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return broker.latest(jobId) or _job_event(job)


@router.websocket("/jobs/{jobId}/subscribe")
async def subscribe_job(websocket: WebSocket, jobId: str):
    store = get_store()
    broker = get_broker()

    job = await run_in_threadpool(store.get_job, jobId)
    if job is None:
        await websocket.close(code=4404, reason="Job not found")
        return

    await websocket.accept()
    subscription = broker.subscribe(jobId)
    client_gone = asyncio.ensure_future(_wait_for_disconnect(websocket))
    deadline = time.monotonic() + _SUBSCRIBE_MAX_SECONDS
    try:
        event = broker.latest(jobId) or _job_event(job)
        await websocket.send_json(event)

        while event["status"] not in TERMINAL_JOB_STATUSES:
            if time.monotonic() >= deadline:
                await websocket.close(code=4408, reason="Subscription timed out")
                return

            poll = asyncio.ensure_future(run_in_threadpool(subscription.get, _SUBSCRIBE_POLL_SECONDS))
            await asyncio.wait({poll, client_gone}, return_when=asyncio.FIRST_COMPLETED)
            if client_gone.done():
                logger.debug("Subscriber for job %s disconnected", jobId)
                return

            received = poll.result()
            if received is None:
                # Result may have been published before this subscription existed.
                current = await run_in_threadpool(store.get_job, jobId)
                if current is None or current.status not in TERMINAL_JOB_STATUSES:
                    continue
                received = broker.latest(jobId) or _job_event(current)
            event = received
            await websocket.send_json(event)

        await websocket.close()
    except WebSocketDisconnect:
        logger.debug("Subscriber for job %s disconnected", jobId)
    finally:
        client_gone.cancel()
        subscription.close()


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


# Stories


@router.post("/stories", response_model=StoryGenerationResponse)
async def generate_story(
    payload: StoryRequest,
    userId: str | None = Header(default=None, alias="X-User-Id"),
    service: StoryService = Depends(provide_story_service),
):
    owner = (userId or "").strip()
    if not owner:
        raise HTTPException(status_code=422, detail="User identity is required")

    request = coerce_story_payload(payload)
    if not str(request.get("level") or "").strip() or not request.get("mode"):
        raise HTTPException(status_code=422, detail="level and mode are required")
    try:
        story_input = StoryJobInput.model_validate(request)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    outcome = service.generate(user_id=owner, story_input=story_input)
    return StoryGenerationResponse(
        story=StoryView(**story_view(outcome.story)),
        newWords=[WordView(**word_view(item)) for item in outcome.new_words],
    )


@router.post("/stories/{storyId}/quiz", response_model=QuizResponse)
async def generate_quiz(storyId: str, service: StoryService = Depends(provide_story_service)):
    try:
        questions = service.generate_quiz(storyId)
    except ValueError as exc:
        raise _http_error(exc) from exc

    return QuizResponse(
        storyId=storyId,
        questions=[
            QuizQuestionItem(
                id=item.question_id,
                question=item.question,
                options=item.options,
                correctAnswer=item.correct_answer,
                explanation=item.explanation,
            )
            for item in questions
        ],
    )


@router.post("/text/adjust-difficulty", response_model=AdjustDifficultyResponse)
async def adjust_difficulty(payload: AdjustDifficultyRequest, service: StoryService = Depends(provide_story_service)):
    try:
        adjusted = service.adjust_difficulty(
            text=payload.text,
            current_level=payload.currentLevel,
            target_level=payload.targetLevel,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return AdjustDifficultyResponse(adjustedText=adjusted)


# Teachers and assignments


@router.post("/teachers", response_model=TeacherView)
async def create_teacher(payload: TeacherCreateRequest, store: DatabaseStore = Depends(provide_store)):
    if not payload.teacherId.strip() or not payload.name.strip():
        raise HTTPException(status_code=422, detail="teacherId and name are required")
    if store.get_teacher_profile(payload.teacherId) is not None:
        raise HTTPException(status_code=409, detail="Teacher profile already exists")

    row = store.create_teacher_profile(
        teacher_id=payload.teacherId,
        name=payload.name.strip(),
        email=payload.email,
        school=payload.school,
    )
    return TeacherView(id=row.teacher_id, name=row.name, email=row.email, school=row.school, createdAt=row.created_at)


@router.post("/teachers/{teacherId}/classes/{classId}/students", response_model=ClassMembersResponse)
async def add_class_student(
    teacherId: str,
    classId: str,
    payload: ClassMemberRequest,
    store: DatabaseStore = Depends(provide_store),
):
    if not payload.studentId.strip():
        raise HTTPException(status_code=422, detail="studentId is required")
    store.add_student_to_class(teacher_id=teacherId, class_id=classId, student_id=payload.studentId.strip())
    return ClassMembersResponse(
        teacherId=teacherId,
        classId=classId,
        studentIds=store.list_class_student_ids(teacher_id=teacherId, class_id=classId),
    )


@router.post("/assignments", response_model=AssignmentView)
async def create_assignment(
    payload: AssignmentCreateRequest,
    service: AssignmentService = Depends(provide_assignment_service),
):
    try:
        row = service.create_assignment(
            teacher_id=payload.teacherId,
            title=payload.title,
            due_date=payload.dueDate,
            level=payload.level,
            required_words=payload.requiredWords,
            excluded_words=payload.excludedWords,
            story_id=payload.storyId,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return _assignment_view(row)


@router.post("/assignments/generate", response_model=AssignmentView)
async def generate_assignment(
    payload: AssignmentGenerateRequest,
    service: AssignmentService = Depends(provide_assignment_service),
):
    try:
        row = service.generate_assignment(
            teacher_id=payload.teacherId,
            title=payload.title,
            assignment_type=payload.assignmentType,
            level=payload.level,
            due_date=payload.dueDate,
            story_id=payload.storyId,
            words_to_remove=payload.wordsToRemove,
            number_of_words=payload.numberOfWords,
            custom_words=payload.customWords,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return _assignment_view(row)


@router.get("/teachers/{teacherId}/assignments", response_model=AssignmentListResponse)
async def list_assignments(teacherId: str, service: AssignmentService = Depends(provide_assignment_service)):
    rows = service.list_for_teacher(teacherId)
    return AssignmentListResponse(teacherId=teacherId, assignments=[_assignment_view(row) for row in rows])


@router.post("/assignments/{assignmentId}/distribute", response_model=DistributeResponse)
async def distribute_assignment(
    assignmentId: str,
    payload: DistributeRequest,
    service: AssignmentService = Depends(provide_assignment_service),
):
    try:
        data = service.distribute(
            assignment_id=assignmentId,
            teacher_id=payload.teacherId,
            student_ids=payload.studentIds,
            class_id=payload.classId,
            send_to_all=payload.sendToAll,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return DistributeResponse(**data)


@router.post("/assignments/{assignmentId}/submissions", response_model=SubmissionResponse)
async def submit_assignment(
    assignmentId: str,
    payload: SubmissionRequest,
    service: AssignmentService = Depends(provide_assignment_service),
):
    try:
        outcome = service.submit(
            assignment_id=assignmentId,
            student_id=payload.studentId,
            answers=payload.answers,
            time_spent_seconds=payload.timeSpentSeconds,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc

    submission = outcome.submission
    return SubmissionResponse(
        id=submission.submission_id,
        assignmentId=submission.assignment_id,
        studentId=submission.student_id,
        score=submission.score,
        maxScore=submission.max_score,
        percentage=outcome.percentage,
        feedback=submission.feedback,
        submittedAt=submission.submitted_at,
        passed=outcome.passed,
    )


@router.get("/assignments/{assignmentId}/analytics", response_model=AnalyticsResponse)
async def get_assignment_analytics(
    assignmentId: str,
    teacherId: str = Query(...),
    service: AssignmentService = Depends(provide_assignment_service),
):
    try:
        data = service.analytics(assignment_id=assignmentId, teacher_id=teacherId)
    except ValueError as exc:
        raise _http_error(exc) from exc

    return AnalyticsResponse(
        assignmentId=data.assignment_id,
        totalSubmissions=data.total_submissions,
        completionRate=data.completion_rate,
        averageScore=data.average_score,
        passRate=data.pass_rate,
        averageTimeMinutes=data.average_time_minutes,
        strugglingStudentIds=data.struggling_student_ids,
        topPerformerIds=data.top_performer_ids,
        mostChallengingWords=data.most_challenging_words,
        excellentCount=data.excellent_count,
        goodCount=data.good_count,
        needsImprovementCount=data.needs_improvement_count,
    )


# Students


@router.patch("/students/{studentId}/words/{wordId}", response_model=WordView)
async def update_word_mastery(
    studentId: str,
    wordId: str,
    payload: WordMasteryRequest,
    service: VocabularyService = Depends(provide_vocabulary_service),
):
    try:
        row = service.update_mastery(student_id=studentId, word_id=wordId, mastery=payload.mastery)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return WordView(**word_view(row))


@router.post("/students/{studentId}/progress", response_model=ProgressResponse)
async def track_progress(studentId: str, service: VocabularyService = Depends(provide_vocabulary_service)):
    row = service.track_progress(studentId)
    return ProgressResponse(
        date=row.date,
        knownWords=row.known_words,
        learningWords=row.learning_words,
        unknownWords=row.unknown_words,
        newWordsToday=row.new_words_today,
    )


@router.get("/students/{studentId}/dashboard", response_model=DashboardResponse)
async def get_dashboard(studentId: str, service: VocabularyService = Depends(provide_vocabulary_service)):
    try:
        data = service.dashboard(studentId)
    except ValueError as exc:
        raise _http_error(exc) from exc

    profile = data.profile
    stories = [StoryView(**story_view(item)) for item in data.stories]
    return DashboardResponse(
        profile=StudentProfileView(
            id=profile.student_id,
            name=profile.name,
            email=profile.email,
            level=profile.level,
            streak=profile.streak,
            vocabularyCount=profile.vocabulary_count,
            lastActiveDate=profile.last_active_date,
            createdAt=profile.created_at,
            updatedAt=profile.updated_at,
            words=[WordView(**word_view(item)) for item in data.words],
            stories=stories,
            badges=[_badge_view(item) for item in data.badges],
        ),
        recommendations=[StoryView(**story_view(item)) for item in data.recommendations],
    )


@router.get("/students/{studentId}/stories", response_model=StoryListResponse)
async def list_student_stories(
    studentId: str,
    limit: int | None = Query(default=None, ge=1, le=200),
    service: StoryService = Depends(provide_story_service),
):
    rows = service.list_for_student(studentId, limit=limit)
    return StoryListResponse(studentId=studentId, stories=[StoryView(**story_view(row)) for row in rows])


@router.post("/students/{studentId}/stories/cleanup", response_model=StoryCleanupResponse)
async def cleanup_student_stories(studentId: str, service: StoryService = Depends(provide_story_service)):
    deleted = service.cleanup(studentId, keep=get_settings().story_retention)
    return StoryCleanupResponse(deletedCount=deleted)


@router.post("/students/{studentId}/badges/check", response_model=BadgeCheckResponse)
async def check_badges(studentId: str, service: BadgeService = Depends(provide_badge_service)):
    try:
        new_badges, all_badges = service.check_badges(studentId)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return BadgeCheckResponse(
        newBadges=[_badge_view(item) for item in new_badges],
        allBadges=[_badge_view(item) for item in all_badges],
    )


@router.get("/students/{studentId}/notifications", response_model=NotificationListResponse)
async def list_notifications(studentId: str, store: DatabaseStore = Depends(provide_store)):
    rows = store.list_notifications(studentId)
    return NotificationListResponse(
        studentId=studentId,
        notifications=[
            NotificationView(
                id=row.notification_id,
                senderId=row.sender_id,
                senderName=row.sender_name,
                title=row.title,
                message=row.message,
                assignmentId=row.assignment_id,
                isRead=row.is_read,
                createdAt=row.created_at,
            )
            for row in rows
        ],
    )
