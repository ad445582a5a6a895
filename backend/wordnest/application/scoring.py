"""Automatic scoring of assignment submissions.

Every scorer returns a :class:`ScoreResult` with ``max_score`` fixed at 100
and never raises on malformed answers.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from wordnest.domain.errors import ValidationError

MAX_SCORE = 100
NO_ANSWERS_FEEDBACK = "No answers provided"


@dataclass(frozen=True)
class ScoreResult:
    score: int
    max_score: int = MAX_SCORE
    feedback: str = ""


def half_up_ratio(numerator: float, denominator: float, scale: int = 100) -> int:
    """``numerator / denominator * scale`` rounded half up (62.5 -> 63); 0 when undefined."""
    if denominator <= 0:
        return 0
    value = Decimal(str(numerator)) * scale / Decimal(str(denominator))
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _percent(correct: int, total: int) -> int:
    return half_up_ratio(correct, total)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _items(answers: Any, key: str) -> list[Any] | None:
    if not isinstance(answers, dict):
        return None
    items = answers.get(key)
    return items if isinstance(items, list) else None


def fill_blank_matches(answer: str, correct_answer: str) -> bool:
    """Exact match, or one side equals the other plus a trailing ``s``."""
    given = answer.strip().lower()
    expected = correct_answer.strip().lower()
    return given == expected or given == expected + "s" or expected == given + "s"


def score_fill_blanks(answers: Any) -> ScoreResult:
    blanks = _items(answers, "blanks")
    if blanks is None:
        return ScoreResult(score=0, feedback=NO_ANSWERS_FEEDBACK)

    correct = 0
    for blank in blanks:
        if not isinstance(blank, dict):
            continue
        if fill_blank_matches(_text(blank.get("answer")), _text(blank.get("correctAnswer"))):
            correct += 1

    total = len(blanks)
    return ScoreResult(
        score=_percent(correct, total),
        feedback=f"You got {correct} out of {total} words correct!",
    )


def score_word_matching(answers: Any) -> ScoreResult:
    matches = _items(answers, "matches")
    if matches is None:
        return ScoreResult(score=0, feedback=NO_ANSWERS_FEEDBACK)

    correct = sum(
        1
        for match in matches
        if isinstance(match, dict) and match.get("selectedDefinition") == match.get("correctDefinition")
    )
    total = len(matches)
    return ScoreResult(
        score=_percent(correct, total),
        feedback=f"You matched {correct} out of {total} words correctly!",
    )


def score_custom_words(answers: Any, required_words: Iterable[str]) -> ScoreResult:
    # Substring match: "cat" counts as used in "category".
    story = answers.get("story") if isinstance(answers, dict) else None
    if not isinstance(story, str) or not story:
        return ScoreResult(score=0, feedback=NO_ANSWERS_FEEDBACK)

    lowered = story.lower()
    required = [word for word in required_words if isinstance(word, str) and word]
    used = sum(1 for word in required if word.lower() in lowered)
    return ScoreResult(
        score=_percent(used, len(required)),
        feedback=f"You used {used} out of {len(required)} required words in your story!",
    )


def score_basic() -> ScoreResult:
    return ScoreResult(score=MAX_SCORE, feedback="Great job completing the story!")


def missed_fill_blank_words(answers: Any) -> list[str]:
    """Correct answers the student did not reproduce exactly (case-insensitive)."""
    missed: list[str] = []
    for blank in _items(answers, "blanks") or []:
        if not isinstance(blank, dict):
            continue
        correct = _text(blank.get("correctAnswer"))
        if _text(blank.get("answer")).lower() != correct.lower():
            missed.append(correct)
    return missed


def score_submission(assignment_type: str, answers: Any, *, required_words: Iterable[str] = ()) -> ScoreResult:
    if assignment_type == "basic":
        return score_basic()
    if assignment_type == "fill_blanks":
        return score_fill_blanks(answers)
    if assignment_type == "word_matching":
        return score_word_matching(answers)
    if assignment_type == "custom_words":
        return score_custom_words(answers, required_words)
    raise ValidationError(f"Unsupported assignment type: {assignment_type}")
