from __future__ import annotations

import logging
from dataclasses import dataclass, field

from wordnest.application.generation import ContentGenerationService
from wordnest.domain.errors import NotFoundError, ValidationError
from wordnest.domain.models import QuizQuestionRecord, StoryRecord, WordRecord
from wordnest.domain.payloads import StoryJobInput
from wordnest.infra.db.store import DatabaseStore

logger = logging.getLogger(__name__)


@dataclass
class StoryOutcome:
    story: StoryRecord
    new_words: list[WordRecord] = field(default_factory=list)
    ai_error: str | None = None


def practice_sentence(token: str) -> str:
    return f'Try using the word "{token}" in a sentence about your day.'


class StoryService:
    def __init__(self, *, store: DatabaseStore, content: ContentGenerationService):
        self.store = store
        self.content = content

    def generate(self, *, user_id: str, story_input: StoryJobInput) -> StoryOutcome:
        """Create a story for ``user_id`` plus vocabulary entries for unseen unknown words.

        Teacher-mode stories belong to the teacher and touch no vocabulary.
        """
        is_teacher = story_input.mode == "teacher"
        student_id = None if is_teacher else user_id
        teacher_id = user_id if is_teacher else None

        if student_id:
            _, created = self.store.ensure_student_profile(student_id)
            if created:
                logger.info("Created default profile for student %s", student_id)

        draft, ai_error = self.content.generate_story(story_input)

        new_words: list[WordRecord] = []
        unknown_word_ids: list[str] = []
        if student_id:
            by_text = {word.text.lower(): word for word in self.store.list_words_for_student(student_id)}
            for token in story_input.unknownWords:
                key = token.lower()
                matched = by_text.get(key)
                if matched is not None:
                    unknown_word_ids.append(matched.word_id)
                    continue

                created_word = self.store.create_word(
                    student_id=student_id,
                    text=token,
                    translation=token,
                    example_sentence=practice_sentence(token),
                    mastery="unknown",
                )
                by_text[key] = created_word
                unknown_word_ids.append(created_word.word_id)
                new_words.append(created_word)

            self.store.refresh_vocabulary_count(student_id)

        story = self.store.create_story(
            title=draft.title,
            content=draft.content,
            level=story_input.level,
            student_id=student_id,
            teacher_id=teacher_id,
            mode=story_input.mode,
            unknown_word_ids=unknown_word_ids,
            highlighted_words=draft.highlighted_words,
        )
        return StoryOutcome(story=story, new_words=new_words, ai_error=ai_error)

    def list_for_student(self, student_id: str, *, limit: int | None = None) -> list[StoryRecord]:
        return self.store.list_stories_for_student(student_id, limit=limit)

    def cleanup(self, student_id: str, *, keep: int) -> int:
        """Delete all but the newest ``keep`` stories of a student."""
        if keep < 0:
            raise ValidationError("keep must be non-negative")
        stale = self.store.list_stories_for_student(student_id)[keep:]
        deleted = self.store.delete_stories([story.story_id for story in stale])
        if deleted:
            logger.info("Deleted %d old stories for student %s", deleted, student_id)
        return deleted

    def generate_quiz(self, story_id: str) -> list[QuizQuestionRecord]:
        story = self.store.get_story(story_id)
        if story is None:
            raise NotFoundError("Story not found")
        questions = self.content.generate_quiz(story.content)
        return self.store.create_quiz_questions(story_id=story_id, questions=questions)

    def adjust_difficulty(self, *, text: str, current_level: str, target_level: str) -> str:
        if not text.strip():
            raise ValidationError("text is required")
        if not target_level.strip():
            raise ValidationError("targetLevel is required")
        return self.content.adjust_difficulty(text=text, current_level=current_level, target_level=target_level)
