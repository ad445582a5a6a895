from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class LLMPort(ABC):
    """Text model returning JSON shaped by a response schema.

    Implementations raise on any failure. Callers own the fallback content,
    so a port never substitutes its own.
    """

    provider_name: str = "llm"
    model_name: str = "llm"

    @abstractmethod
    def generate_structured(
        self,
        *,
        prompt: str,
        schema: dict[str, Any],
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        """Return schema-constrained JSON output."""
