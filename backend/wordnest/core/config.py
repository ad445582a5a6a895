from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

ENV_PREFIX = "WORDNEST_"
LLM_BACKENDS = ("mock", "gemini")
_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def _load_dotenv() -> None:
    if os.getenv(f"{ENV_PREFIX}SKIP_DOTENV") == "1":
        return

    env_path = Path(__file__).resolve().parents[2] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(env_path, override=True)


def _env(name: str, default: str | None = None) -> str | None:
    """Read ``WORDNEST_<name>``; blank values count as unset."""
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _env_flag(name: str, default: bool = False) -> bool:
    raw = (_env(name) or "").lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


@dataclass(frozen=True)
class Settings:
    env: str
    app_name: str
    cors_origins: list[str]
    database_url: str | None
    llm_backend: str
    gemini_api_key: str | None
    gemini_model: str
    llm_timeout_seconds: int
    llm_max_retries: int
    sync_processing: bool
    notifier_batch_size: int
    publish_webhook_url: str | None
    publish_api_key: str | None
    story_retention: int
    log_level: str

    @property
    def uses_gemini(self) -> bool:
        return self.llm_backend == "gemini" and bool(self.gemini_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_dotenv()

    llm_backend = (_env("LLM_BACKEND") or "mock").lower()
    if llm_backend not in LLM_BACKENDS:
        llm_backend = "mock"
    origins = _env("CORS_ORIGINS", "http://localhost:3000") or ""

    return Settings(
        env=_env("ENV", "development") or "development",
        app_name="WordNest API",
        cors_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
        database_url=os.getenv("DATABASE_URL") or None,
        llm_backend=llm_backend,
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL") or "gemini-2.5-flash",
        llm_timeout_seconds=_env_int("LLM_TIMEOUT_SECONDS", 90, minimum=1),
        llm_max_retries=_env_int("LLM_MAX_RETRIES", 0),
        sync_processing=_env_flag("SYNC_PROCESSING"),
        notifier_batch_size=_env_int("NOTIFIER_BATCH_SIZE", 10, minimum=1),
        publish_webhook_url=_env("PUBLISH_WEBHOOK_URL"),
        publish_api_key=_env("PUBLISH_API_KEY"),
        story_retention=_env_int("STORY_RETENTION", 30),
        log_level=(_env("LOG_LEVEL") or "INFO").upper(),
    )
