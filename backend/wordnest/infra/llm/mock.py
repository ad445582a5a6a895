from __future__ import annotations

from typing import Any

from wordnest.infra.ports.llm import LLMPort


class MockLLM(LLMPort):
    """Offline stand-in that echoes each request.

    The echo carries none of the fields a story, translation, quiz or
    rewrite needs, so every generation takes its fallback path.
    """

    provider_name = "mock"
    model_name = "mock-llm-v1"

    def __init__(self):
        self.requests: list[dict[str, Any]] = []

    def generate_structured(
        self,
        *,
        prompt: str,
        schema: dict[str, Any],
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        self.requests.append({"prompt": prompt, "schemaRequired": list(schema.get("required") or [])})
        return {
            "provider": self.provider_name,
            "model": model or self.model_name,
            "promptPreview": prompt[:80],
            "schemaKeys": sorted(schema),
            "temperature": temperature,
        }
