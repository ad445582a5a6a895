from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from wordnest.domain.payloads import StoryJobInput, WordDetails
from wordnest.infra.llm.validate import validate_llm_output
from wordnest.infra.ports.llm import LLMPort

logger = logging.getLogger(__name__)

MAX_QUIZ_QUESTIONS = 5

_STORY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["title", "content", "highlightedWords"],
    "properties": {
        "title": {"type": "string"},
        "content": {"type": "string"},
        "highlightedWords": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "word": {"type": "string"},
                    "offset": {"type": "integer"},
                    "length": {"type": "integer"},
                },
            },
        },
    },
}

_TRANSLATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["word", "translation", "exampleSentence"],
    "properties": {
        "word": {"type": "string"},
        "translation": {"type": "string"},
        "partOfSpeech": {"type": ["string", "null"]},
        "phonetic": {"type": ["string", "null"]},
        "pastTense": {"type": ["string", "null"]},
        "futureTense": {"type": ["string", "null"]},
        "pluralForm": {"type": ["string", "null"]},
        "exampleSentence": {"type": "string"},
        "exampleTranslation": {"type": "string"},
        "usageNotes": {"type": ["string", "null"]},
    },
}

_QUIZ_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["questions"],
    "properties": {
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["question", "options", "correctAnswer", "explanation"],
                "properties": {
                    "question": {"type": "string"},
                    "options": {"type": "array", "items": {"type": "string"}},
                    "correctAnswer": {"type": "string", "enum": ["A", "B", "C", "D"]},
                    "explanation": {"type": "string"},
                },
            },
        },
    },
}

_ADJUST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["adjustedText"],
    "properties": {"adjustedText": {"type": "string"}},
}

FALLBACK_QUIZ_QUESTIONS: tuple[dict[str, Any], ...] = (
    {
        "question": "What is the main topic of this story?",
        "options": [
            "The story's central theme",
            "A secondary detail",
            "An unrelated topic",
            "None of the above",
        ],
        "correctAnswer": "A",
        "explanation": "The story focuses on its main theme throughout.",
    },
    {
        "question": "Which best describes the story?",
        "options": [
            "Educational and informative",
            "Confusing and unclear",
            "Too short",
            "Unrelated to English learning",
        ],
        "correctAnswer": "A",
        "explanation": "The story is designed for English language learning.",
    },
)


@dataclass
class StoryDraft:
    title: str
    content: str
    highlighted_words: list[dict[str, Any]] = field(default_factory=list)
    model: str = "fallback_template"


def _coerce_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    return ""


def _optional_text(value: Any) -> str | None:
    return _coerce_text(value) or None


def _age_context(age: int) -> str:
    if age <= 10:
        return "a young child who loves adventures, animals, and fantasy"
    if age <= 14:
        return "a pre-teen interested in friendship, school life, and discovery"
    return "an adult or young adult interested in engaging, mature storytelling"


def _mode_context(mode: str) -> str:
    if mode == "placement":
        return "This is a placement test story to assess vocabulary level."
    if mode == "teacher":
        return "This is a teacher-assigned story for classroom learning."
    return "This is a personalized story for enjoyment and immersion."


def find_highlights(content: str, words: list[str]) -> list[dict[str, Any]]:
    highlights: list[dict[str, Any]] = []
    for word in words:
        offset = content.find(word)
        if offset >= 0:
            highlights.append({"word": word, "offset": offset, "length": len(word)})
    return highlights


def fallback_story(story_input: StoryJobInput) -> StoryDraft:
    words = story_input.target_words()
    listed = ", ".join(words[:3])
    more = "and many other words" if len(words) > 3 else ""
    first = words[0] if len(words) > 0 else "new words"
    second = words[1] if len(words) > 1 else "these words"
    third = words[2] if len(words) > 2 else "challenging vocabulary"

    paragraphs = [
        "Once upon a time, there was a curious learner who loved discovering new words "
        "and improving their English skills every single day.",
        "Every morning, they would wake up excited to practice. "
        f"They knew that learning {listed} {more} would help them communicate better. "
        "The learner understood that each word had its own special meaning and purpose.",
        "During the day, they would read books, listen to stories, and talk with friends. "
        f"When they encountered {first}, they would write them down in a special notebook. "
        "This notebook became their treasure chest of vocabulary.",
        f"The learner discovered that using {second} in sentences made them easier to remember. "
        "They practiced speaking aloud, creating their own stories, and sharing them with others. "
        "Sometimes the stories were funny, and sometimes they were serious, but they were always interesting.",
        "As weeks passed, the learner noticed something wonderful. "
        f"The words that once seemed difficult, like {third}, now felt natural. "
        "They could use them without thinking too hard. "
        "This progress made them feel proud and motivated to continue learning.",
        "Their teacher was impressed with how much they had improved. "
        "Their friends enjoyed listening to their stories. "
        "The learner realized that patience and daily practice were the keys to success. "
        "Every new word was like a stepping stone, helping them reach new heights in their language journey.",
        "With confidence growing stronger each day, the learner looked forward to discovering "
        "even more words and becoming an excellent English speaker.",
        "The end.",
    ]
    content = "\n\n".join(paragraphs)
    return StoryDraft(
        title=f"Learning Adventure ({story_input.level})",
        content=content,
        highlighted_words=find_highlights(content, words),
    )


def fallback_translation(word: str, source_language: str, target_language: str) -> WordDetails:
    return WordDetails(
        word=word,
        translation=f'[Translation for "{word}"]',
        sourceLanguage=source_language,
        targetLanguage=target_language,
        exampleSentence=f'The student used the word "{word}" in their essay.',
        exampleTranslation=(
            f'A diák a "{word}" szót használta az esszéjében.' if target_language == "hu" else ""
        ),
        usageNotes="Please ensure you have a stable internet connection for detailed translations.",
    )


def _normalize_highlights(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    out: list[dict[str, Any]] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        word = _coerce_text(item.get("word"))
        offset = item.get("offset")
        length = item.get("length")
        if word and isinstance(offset, int) and isinstance(length, int):
            out.append({"word": word, "offset": offset, "length": length})
    return out


def _normalize_question(item: Any) -> dict[str, Any] | None:
    if not isinstance(item, dict):
        return None
    question = _coerce_text(item.get("question"))
    options = [text for text in (_coerce_text(opt) for opt in item.get("options") or []) if text]
    correct = _coerce_text(item.get("correctAnswer")).upper()
    if not question or len(options) < 2 or not correct:
        return None
    return {
        "question": question,
        "options": options,
        "correctAnswer": correct,
        "explanation": _coerce_text(item.get("explanation")),
    }


class ContentGenerationService:
    """AI-backed content with deterministic fallbacks."""

    def __init__(self, *, llm: LLMPort):
        self.llm = llm

    @property
    def provider_model(self) -> str:
        return getattr(self.llm, "model_name", None) or "llm"

    def _structured(self, *, prompt: str, schema: dict[str, Any], schema_name: str, **kwargs: Any) -> dict[str, Any]:
        data = self.llm.generate_structured(prompt=prompt, schema=schema, **kwargs)
        return validate_llm_output(data, schema, schema_name)

    def generate_story(self, story_input: StoryJobInput) -> tuple[StoryDraft, str | None]:
        """Return the draft and the AI error message when the fallback was used."""
        words = story_input.target_words()
        topic = (
            f'Topic: write a story specifically about "{story_input.topic}".'
            if story_input.topic
            else "Scenario: choose a random, creative scenario."
        )
        lines = [
            f"Write a story for a {story_input.age}-year-old reader at CEFR level {story_input.level}.",
            _mode_context(story_input.mode),
            topic,
            f"Target audience: {_age_context(story_input.age)}.",
            "Length: about 1000 words, plain text without markdown.",
        ]
        if story_input.difficulty:
            lines.append(f"Difficulty: {story_input.difficulty}.")
        if words:
            lines.append(f"Use each of these target words 2-3 times: {', '.join(words)}.")
        if story_input.excludedWords:
            lines.append(f"Avoid these words: {', '.join(story_input.excludedWords)}.")
        lines.append("In highlightedWords list every occurrence of the target words with its character offset.")

        try:
            data = self._structured(
                prompt="\n".join(lines),
                schema=_STORY_SCHEMA,
                schema_name="story",
                system_prompt="You are a creative storyteller for English learners. Return strict JSON only.",
                temperature=1.0,
            )
            title = _coerce_text(data.get("title"))
            content = _coerce_text(data.get("content"))
            if not title or not content:
                raise RuntimeError("Invalid story structure from AI")
            draft = StoryDraft(
                title=title,
                content=content,
                highlighted_words=_normalize_highlights(data.get("highlightedWords")),
                model=_coerce_text(data.get("model")) or self.provider_model,
            )
            return draft, None
        except Exception as exc:
            logger.warning("Story generation fell back to template: %s", exc)
            return fallback_story(story_input), str(exc)

    def translate_word(self, *, word: str, source_language: str, target_language: str) -> WordDetails:
        """Raises when the model output is unusable; callers pick the fallback."""
        prompt = (
            f'Describe the {source_language} word "{word}" for a student whose language is {target_language}.\n'
            f"Give the {target_language} translation, part of speech, phonetic spelling, past and future "
            "tense for verbs, plural form for nouns, a natural example sentence in the source language, "
            f"its {target_language} translation and short usage notes in {target_language}."
        )
        data = self._structured(
            prompt=prompt,
            schema=_TRANSLATION_SCHEMA,
            schema_name="translation",
            system_prompt="You are a language learning assistant. Return strict JSON only.",
            temperature=0.7,
        )
        translation = _coerce_text(data.get("translation"))
        if not translation:
            raise RuntimeError("AI response is missing a translation")

        return WordDetails(
            word=_coerce_text(data.get("word")) or word,
            translation=translation,
            sourceLanguage=source_language,
            targetLanguage=target_language,
            exampleSentence=_coerce_text(data.get("exampleSentence")) or f"Example with {word}.",
            exampleTranslation=_coerce_text(data.get("exampleTranslation")),
            phonetic=_optional_text(data.get("phonetic")),
            partOfSpeech=_optional_text(data.get("partOfSpeech")),
            pastTense=_optional_text(data.get("pastTense")),
            futureTense=_optional_text(data.get("futureTense")),
            pluralForm=_optional_text(data.get("pluralForm")),
            usageNotes=_optional_text(data.get("usageNotes")),
        )

    def generate_quiz(self, content: str) -> list[dict[str, Any]]:
        prompt = (
            "Based on the following English learning story, write 5 multiple-choice comprehension questions "
            "with four options each, the correct option letter (A-D) and a short explanation.\n\n"
            f"Story:\n{content}"
        )
        try:
            data = self._structured(prompt=prompt, schema=_QUIZ_SCHEMA, schema_name="quiz", temperature=0.7)
            raw = data.get("questions")
            questions = [item for item in (_normalize_question(q) for q in raw or []) if item is not None]
            if not questions:
                raise RuntimeError("No questions generated")
        except Exception as exc:
            logger.warning("Quiz generation fell back to fixed questions: %s", exc)
            questions = [dict(item) for item in FALLBACK_QUIZ_QUESTIONS]
        return questions[:MAX_QUIZ_QUESTIONS]

    def adjust_difficulty(self, *, text: str, current_level: str, target_level: str) -> str:
        prompt = (
            f"Rewrite the following text from CEFR level {current_level} to level {target_level}. "
            "Keep the meaning, adjust vocabulary and sentence complexity. "
            "Return only the rewritten text in adjustedText.\n\n"
            f"Text:\n{text}"
        )
        try:
            data = self._structured(prompt=prompt, schema=_ADJUST_SCHEMA, schema_name="adjustment", temperature=0.5)
            adjusted = _coerce_text(data.get("adjustedText"))
            if not adjusted:
                raise RuntimeError("AI response is missing adjustedText")
            return adjusted
        except Exception as exc:
            logger.warning("Difficulty adjustment failed, returning original text: %s", exc)
            return text
