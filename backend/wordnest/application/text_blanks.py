"""Fill-in-the-blanks text transforms used by teacher assignments."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

BLANK_PLACEHOLDER = "_____"
PUNCTUATION = ".,!?;:\"“”'‘’()"

_WHITESPACE_SPLIT = re.compile(r"(\s+)")
_PUNCTUATION_RE = re.compile("[" + re.escape(PUNCTUATION) + "]")


@dataclass(frozen=True)
class BlankPosition:
    position: int
    word: str
    originalWord: str
    index: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlankPosition:
        return cls(
            position=int(data["position"]),
            word=str(data.get("word") or ""),
            originalWord=str(data["originalWord"]),
            index=int(data.get("index") or 0),
        )


def clean_token(token: str) -> str:
    return _PUNCTUATION_RE.sub("", token).lower()


def create_fill_blanks(text: str, target_words: Iterable[str]) -> tuple[str, list[BlankPosition]]:
    """Replace every occurrence of the target words with ``_____``.

    Tokens are whitespace-delimited; a token matches when, stripped of the
    punctuation set and lowercased, it equals a target word. ``position`` is
    the token offset in the original text.
    """
    targets = {word.strip().lower() for word in target_words if word and word.strip()}
    positions: list[BlankPosition] = []
    modified = text
    offset = 0
    position = 0

    for token in _WHITESPACE_SPLIT.split(text):
        if not token:
            continue
        if token.isspace():
            position += len(token)
            continue

        cleaned = clean_token(token)
        if cleaned in targets:
            positions.append(
                BlankPosition(position=position, word=cleaned, originalWord=token, index=len(positions))
            )
            start = position + offset
            modified = modified[:start] + BLANK_PLACEHOLDER + modified[start + len(token) :]
            offset += len(BLANK_PLACEHOLDER) - len(token)

        position += len(token)

    return modified, positions


def reconstruct_text(modified_text: str, positions: Iterable[BlankPosition | dict[str, Any]]) -> str:
    """Inverse of :func:`create_fill_blanks`."""
    records = [item if isinstance(item, BlankPosition) else BlankPosition.from_dict(item) for item in positions]
    text = modified_text
    # With every earlier blank restored, the next one sits at its original offset.
    for record in sorted(records, key=lambda item: item.index):
        start = record.position
        if text[start : start + len(BLANK_PLACEHOLDER)] != BLANK_PLACEHOLDER:
            raise ValueError(f"No blank at position {start} for word {record.originalWord!r}")
        text = text[:start] + record.originalWord + text[start + len(BLANK_PLACEHOLDER) :]
    return text


def extract_words_for_matching(
    content: str,
    highlighted_words: Any,
    number_of_words: int | None = None,
) -> list[str]:
    """Pick words for a matching exercise: highlighted words first, then longer story words."""
    wanted = number_of_words or 10
    words: list[str] = []

    if isinstance(highlighted_words, list):
        for item in highlighted_words:
            raw = item.get("word") if isinstance(item, dict) else None
            if isinstance(raw, str) and raw and raw.lower() not in words:
                words.append(raw.lower())

    if len(words) < wanted:
        candidates = [token for token in clean_token(content).split() if len(token) > 3]
        for token in dict.fromkeys(candidates):
            if token not in words:
                words.append(token)
            if len(words) >= wanted:
                break

    return words[: min(wanted, 20)]
