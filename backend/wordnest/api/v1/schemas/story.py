from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class StoryRequest(BaseModel):
    level: str | None = None
    age: int | None = None
    mode: str | None = None
    knownWords: list[str | None] | None = None
    unknownWords: list[str | None] | None = None
    requiredWords: list[str | None] | None = None
    excludedWords: list[str | None] | None = None
    topic: str | None = None
    difficulty: str | None = None


class HighlightedWord(BaseModel):
    word: str
    offset: int
    length: int


class StoryView(BaseModel):
    id: str
    studentId: str | None = None
    teacherId: str | None = None
    title: str
    content: str
    level: str
    mode: str | None = None
    unknownWordIds: list[str] = Field(default_factory=list)
    highlightedWords: list[HighlightedWord] = Field(default_factory=list)
    createdAt: str
    updatedAt: str


class WordView(BaseModel):
    id: str
    studentId: str
    text: str
    translation: str
    exampleSentence: str | None = None
    mastery: str
    lastReviewedAt: str | None = None
    createdAt: str
    updatedAt: str


class StoryGenerationResponse(BaseModel):
    story: StoryView
    newWords: list[WordView]


class StoryListResponse(BaseModel):
    studentId: str
    stories: list[StoryView]


class StoryCleanupResponse(BaseModel):
    deletedCount: int


class QuizQuestionItem(BaseModel):
    id: str
    question: str
    options: list[str]
    correctAnswer: str
    explanation: str


class QuizResponse(BaseModel):
    storyId: str
    questions: list[QuizQuestionItem]


class AdjustDifficultyRequest(BaseModel):
    text: str
    currentLevel: str = ""
    targetLevel: str


class AdjustDifficultyResponse(BaseModel):
    adjustedText: str


def coerce_story_payload(payload: StoryRequest) -> dict[str, Any]:
    return payload.model_dump(exclude_none=True)
