from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class TranslationJobRequest(BaseModel):
    word: str | None = None
    sourceLanguage: str | None = None
    targetLanguage: str | None = None


class JobAcceptedResponse(BaseModel):
    jobId: str
    status: str


class JobDetailResponse(BaseModel):
    id: str
    userId: str
    type: str
    status: str
    input: dict[str, Any]
    result: dict[str, Any] | None = None
    error: str | None = None
    startedAt: str
    completedAt: str | None = None


class JobEventItem(BaseModel):
    status: str
    createdAt: str


class JobEventListResponse(BaseModel):
    jobId: str
    events: list[JobEventItem]
