from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from wordnest.domain.errors import NotFoundError, ValidationError
from wordnest.domain.models import JobEventRecord, JobRecord
from wordnest.domain.payloads import StoryJobInput, TranslationJobInput
from wordnest.infra.db.store import DatabaseStore

logger = logging.getLogger(__name__)


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "input"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid input"


class JobSubmissionService:
    """Validates requests and writes ``pending`` jobs; processing starts from the insert."""

    def __init__(self, *, store: DatabaseStore):
        self.store = store

    @staticmethod
    def _require_user(user_id: str | None) -> str:
        value = (user_id or "").strip()
        if not value:
            raise ValidationError("User identity is required")
        return value

    def submit_translation(
        self,
        *,
        user_id: str | None,
        word: str | None,
        target_language: str | None,
        source_language: str | None = None,
    ) -> dict[str, Any]:
        owner = self._require_user(user_id)
        if not (word or "").strip() or not (target_language or "").strip():
            raise ValidationError("word and targetLanguage are required")

        try:
            payload = TranslationJobInput(
                word=word,
                sourceLanguage=source_language,  # type: ignore[arg-type]
                targetLanguage=target_language,
            )
        except PydanticValidationError as exc:
            raise ValidationError(_describe(exc)) from exc

        job = self.store.create_job(user_id=owner, job_type="translation", input_payload=payload.model_dump())
        logger.info("Queued translation job %s for user %s", job.job_id, owner)
        return {"jobId": job.job_id, "status": job.status}

    def submit_story(self, *, user_id: str | None, request: dict[str, Any]) -> dict[str, Any]:
        owner = self._require_user(user_id)
        if not str(request.get("level") or "").strip() or not request.get("mode"):
            raise ValidationError("level and mode are required")

        try:
            payload = StoryJobInput.model_validate(request)
        except PydanticValidationError as exc:
            raise ValidationError(_describe(exc)) from exc

        job = self.store.create_job(user_id=owner, job_type="story", input_payload=payload.model_dump())
        logger.info("Queued story job %s (%s) for user %s", job.job_id, payload.mode, owner)
        return {"jobId": job.job_id, "status": job.status}

    def get_job(self, job_id: str) -> JobRecord:
        job = self.store.get_job(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        return job

    def list_events(self, job_id: str) -> list[JobEventRecord]:
        self.get_job(job_id)
        return self.store.list_job_events(job_id)
