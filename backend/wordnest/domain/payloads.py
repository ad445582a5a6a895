"""Per-kind shapes of ``GenerationJob.input`` and ``GenerationJob.result``.

The job row stores both as JSON. They are decoded into these models at the
point of dispatch so the processor never trusts an untyped blob.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from wordnest.domain.errors import ValidationError


def normalize_word_list(values: list[str | None] | None) -> list[str]:
    if not values:
        return []
    return [item.strip() for item in values if isinstance(item, str) and item.strip()]


class TranslationJobInput(BaseModel):
    word: str
    sourceLanguage: str = "en"
    targetLanguage: str

    @field_validator("word", "targetLanguage")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("sourceLanguage", mode="before")
    @classmethod
    def _default_source(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "en"
        return value


class StoryJobInput(BaseModel):
    level: str
    age: int = 10
    mode: Literal["placement", "personalized", "teacher"]
    knownWords: list[str] = Field(default_factory=list)
    unknownWords: list[str] = Field(default_factory=list)
    requiredWords: list[str] = Field(default_factory=list)
    excludedWords: list[str] = Field(default_factory=list)
    topic: str | None = None
    difficulty: str | None = None

    @field_validator("level")
    @classmethod
    def _level_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("age", mode="before")
    @classmethod
    def _default_age(cls, value: Any) -> Any:
        return 10 if value is None else value

    @field_validator("knownWords", "unknownWords", "requiredWords", "excludedWords", mode="before")
    @classmethod
    def _normalize_words(cls, value: Any) -> list[str]:
        return normalize_word_list(value if isinstance(value, list) else None)

    def target_words(self) -> list[str]:
        return list(dict.fromkeys([*self.unknownWords, *self.requiredWords]))


class WordDetails(BaseModel):
    word: str
    translation: str
    sourceLanguage: str
    targetLanguage: str
    exampleSentence: str
    exampleTranslation: str = ""
    phonetic: str | None = None
    partOfSpeech: str | None = None
    pastTense: str | None = None
    futureTense: str | None = None
    pluralForm: str | None = None
    usageNotes: str | None = None


JobInput = TranslationJobInput | StoryJobInput

_INPUT_MODELS: dict[str, type[BaseModel]] = {
    "translation": TranslationJobInput,
    "story": StoryJobInput,
}


def decode_job_input(job_type: str, raw: dict[str, Any] | None) -> JobInput:
    model = _INPUT_MODELS.get(job_type)
    if model is None:
        raise ValidationError(f"Unsupported job type: {job_type}")
    return model.model_validate(raw or {})  # type: ignore[return-value]
