"""camelCase views of stored entities, as carried in job results and events."""

from __future__ import annotations

from typing import Any

from wordnest.domain.models import StoryRecord, WordRecord


def story_view(story: StoryRecord) -> dict[str, Any]:
    return {
        "id": story.story_id,
        "studentId": story.student_id,
        "teacherId": story.teacher_id,
        "title": story.title,
        "content": story.content,
        "level": story.level,
        "mode": story.mode,
        "unknownWordIds": list(story.unknown_word_ids),
        "highlightedWords": list(story.highlighted_words),
        "createdAt": story.created_at,
        "updatedAt": story.updated_at,
    }


def word_view(word: WordRecord) -> dict[str, Any]:
    return {
        "id": word.word_id,
        "studentId": word.student_id,
        "text": word.text,
        "translation": word.translation,
        "exampleSentence": word.example_sentence,
        "mastery": word.mastery,
        "lastReviewedAt": word.last_reviewed_at,
        "createdAt": word.created_at,
        "updatedAt": word.updated_at,
    }
