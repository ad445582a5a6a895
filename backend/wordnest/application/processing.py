"""Consumes job inserts from the change stream and runs the generation work."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from wordnest.application.generation import ContentGenerationService, fallback_translation
from wordnest.application.stories import StoryService
from wordnest.application.views import story_view, word_view
from wordnest.domain.models import JobChange, JobRecord
from wordnest.domain.payloads import StoryJobInput, TranslationJobInput, decode_job_input
from wordnest.infra.db.store import DatabaseStore
from wordnest.infra.ports.publisher import ResultPublisherPort

logger = logging.getLogger(__name__)


class JobNoLongerProcessingError(RuntimeError):
    pass


def failure_event(job: JobRecord, message: str) -> dict[str, Any]:
    kind_key = "translation" if job.job_type == "translation" else "story"
    event: dict[str, Any] = {"jobId": job.job_id, "status": "failed", kind_key: None, "error": message}
    if kind_key == "story":
        event["newWords"] = []
    return event


class GenerationJobProcessor:
    def __init__(
        self,
        *,
        store: DatabaseStore,
        stories: StoryService,
        content: ContentGenerationService,
        publisher: ResultPublisherPort,
    ):
        self.store = store
        self.stories = stories
        self.content = content
        self.publisher = publisher

    def process_batch(self, changes: Iterable[JobChange]) -> None:
        records = list(changes)
        logger.info("Received %d change record(s)", len(records))
        for change in records:
            if change.event_name != "INSERT":
                logger.debug("Ignoring %s for job %s", change.event_name, change.job.job_id)
                continue
            try:
                self.process_job(change.job)
            except Exception:
                # One bad record never stops its siblings.
                logger.exception("Unhandled error for job %s", change.job.job_id)

    def process_job(self, job: JobRecord) -> bool:
        """Run one job. Returns False when the job was not pending (redelivery)."""
        if not self.store.claim_job(job.job_id):
            logger.info("Skipping job %s: no longer pending", job.job_id)
            return False

        try:
            payload = decode_job_input(job.job_type, job.input)
            if isinstance(payload, TranslationJobInput):
                event = self._process_translation(job, payload)
            else:
                event = self._process_story(job, payload)
        except Exception as exc:
            logger.exception("Job %s failed", job.job_id)
            self._fail(job, str(exc) or type(exc).__name__)
            return True

        self._publish(event)
        logger.info("Job %s completed", job.job_id)
        return True

    def _complete(self, job: JobRecord, result: dict[str, Any], error: str | None) -> None:
        if not self.store.complete_job(job_id=job.job_id, result=result, error=error):
            raise JobNoLongerProcessingError(f"Job {job.job_id} is no longer processing")

    def _process_translation(self, job: JobRecord, payload: TranslationJobInput) -> dict[str, Any]:
        error: str | None = None
        try:
            details = self.content.translate_word(
                word=payload.word,
                source_language=payload.sourceLanguage,
                target_language=payload.targetLanguage,
            )
        except Exception as exc:
            logger.warning("Translation for job %s fell back: %s", job.job_id, exc)
            details = fallback_translation(payload.word, payload.sourceLanguage, payload.targetLanguage)
            error = str(exc) or type(exc).__name__

        result = details.model_dump()
        self._complete(job, result, error)
        return {"jobId": job.job_id, "status": "completed", "translation": result, "error": None}

    def _process_story(self, job: JobRecord, payload: StoryJobInput) -> dict[str, Any]:
        outcome = self.stories.generate(user_id=job.user_id, story_input=payload)
        result = {
            "story": story_view(outcome.story),
            "newWords": [word_view(word) for word in outcome.new_words],
        }
        self._complete(job, result, outcome.ai_error)
        return {"jobId": job.job_id, "status": "completed", **result, "error": None}

    def _fail(self, job: JobRecord, message: str) -> None:
        try:
            transitioned = self.store.fail_job(job_id=job.job_id, error_message=message)
        except Exception:
            logger.exception("Could not mark job %s as failed", job.job_id)
            transitioned = True
        if transitioned:
            self._publish(failure_event(job, message))

    def _publish(self, event: dict[str, Any]) -> None:
        try:
            self.publisher.publish(event)
        except Exception as exc:
            logger.warning("Publishing result for job %s failed: %s", event.get("jobId"), exc)
