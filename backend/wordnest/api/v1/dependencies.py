from __future__ import annotations

from functools import lru_cache, partial

from wordnest.application.assignments import AssignmentService
from wordnest.application.badges import BadgeService
from wordnest.application.generation import ContentGenerationService
from wordnest.application.jobs import JobSubmissionService
from wordnest.application.processing import GenerationJobProcessor
from wordnest.application.stories import StoryService
from wordnest.application.vocabulary import VocabularyService
from wordnest.core.config import get_settings
from wordnest.infra.db.store import DatabaseStore
from wordnest.infra.llm.gemini import GeminiLLM
from wordnest.infra.llm.mock import MockLLM
from wordnest.infra.ports.llm import LLMPort
from wordnest.infra.ports.publisher import ResultPublisherPort
from wordnest.infra.pubsub.broker import InMemoryResultBroker
from wordnest.infra.pubsub.composite import CompositeResultPublisher
from wordnest.infra.pubsub.webhook import WebhookResultPublisher
from wordnest.workers.notifier import JobChangeNotifier


@lru_cache(maxsize=1)
def get_store() -> DatabaseStore:
    return DatabaseStore()


@lru_cache(maxsize=1)
def get_llm() -> LLMPort:
    settings = get_settings()
    if settings.uses_gemini:
        return GeminiLLM(
            api_key=settings.gemini_api_key,
            model_name=settings.gemini_model,
            timeout_seconds=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
        )
    return MockLLM()


@lru_cache(maxsize=1)
def get_broker() -> InMemoryResultBroker:
    return InMemoryResultBroker()


@lru_cache(maxsize=1)
def get_publisher() -> ResultPublisherPort:
    settings = get_settings()
    publishers: list[ResultPublisherPort] = [get_broker()]
    if settings.publish_webhook_url:
        publishers.append(
            WebhookResultPublisher(url=settings.publish_webhook_url, api_key=settings.publish_api_key)
        )
    return CompositeResultPublisher(publishers)


def get_content_service() -> ContentGenerationService:
    return ContentGenerationService(llm=get_llm())


def get_story_service() -> StoryService:
    return StoryService(store=get_store(), content=get_content_service())


def get_job_service() -> JobSubmissionService:
    return JobSubmissionService(store=get_store())


@lru_cache(maxsize=1)
def get_processor() -> GenerationJobProcessor:
    return GenerationJobProcessor(
        store=get_store(),
        stories=get_story_service(),
        content=get_content_service(),
        publisher=get_publisher(),
    )


@lru_cache(maxsize=1)
def get_notifier() -> JobChangeNotifier:
    settings = get_settings()
    return JobChangeNotifier(
        get_processor().process_batch,
        batch_size=settings.notifier_batch_size,
        sync=settings.sync_processing,
        job_loader=get_store().get_job,
        backlog_loader=partial(get_store().list_jobs, status="pending"),
    )


def get_assignment_service() -> AssignmentService:
    return AssignmentService(store=get_store())


def get_vocabulary_service() -> VocabularyService:
    return VocabularyService(store=get_store())


def get_badge_service() -> BadgeService:
    return BadgeService(store=get_store())


async def provide_store() -> DatabaseStore:
    return get_store()


async def provide_broker() -> InMemoryResultBroker:
    return get_broker()


async def provide_job_service() -> JobSubmissionService:
    return get_job_service()


async def provide_story_service() -> StoryService:
    return get_story_service()


async def provide_assignment_service() -> AssignmentService:
    return get_assignment_service()


async def provide_vocabulary_service() -> VocabularyService:
    return get_vocabulary_service()


async def provide_badge_service() -> BadgeService:
    return get_badge_service()
