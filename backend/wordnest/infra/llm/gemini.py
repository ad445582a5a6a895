from __future__ import annotations

import json
import logging
import re
import time
from typing import Any
from urllib import error as urlerror
from urllib import parse, request

from wordnest.infra.ports.llm import LLMPort

logger = logging.getLogger(__name__)

GOOGLE_AI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

_RETRYABLE_STATUS = frozenset({408, 429, 500, 502, 503, 504})
_BLOCKED_FINISH_REASONS = frozenset({"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"})
_MAX_PROMPT_CHARS = 16000
_MAX_SYSTEM_PROMPT_CHARS = 6000
_DEFAULT_TEMPERATURE = 0.7
_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

_SCHEMA_TYPES = {
    "object": "OBJECT",
    "array": "ARRAY",
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
}


class GeminiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


def _to_gemini_response_schema(node: Any) -> dict[str, Any]:
    """Translate a JSON Schema subset into Gemini's ``responseSchema`` dialect.

    ``{"type": ["string", "null"]}`` becomes ``{"type": "STRING", "nullable": true}``.
    Keywords Gemini does not understand are dropped.
    """
    if not isinstance(node, dict):
        return {}

    raw_type = node.get("type")
    declared = raw_type if isinstance(raw_type, list) else [raw_type]
    names = [item.lower() for item in declared if isinstance(item, str)]
    concrete = [name for name in names if name != "null"]

    out: dict[str, Any] = {}
    if concrete and concrete[0] in _SCHEMA_TYPES:
        out["type"] = _SCHEMA_TYPES[concrete[0]]
    if "null" in names or node.get("nullable") is True:
        out["nullable"] = True

    for key in ("description", "enum"):
        if key in node:
            out[key] = node[key]
    if isinstance(node.get("required"), list):
        out["required"] = [name for name in node["required"] if isinstance(name, str)]
    if isinstance(node.get("properties"), dict):
        out["properties"] = {name: _to_gemini_response_schema(child) for name, child in node["properties"].items()}
    if isinstance(node.get("items"), dict):
        out["items"] = _to_gemini_response_schema(node["items"])
    return out


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the outermost ``{...}`` block of a model reply."""
    match = _JSON_BLOCK.search(text)
    if match is None:
        raise GeminiError("Failed to parse JSON from Gemini response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise GeminiError(f"Gemini response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise GeminiError("Gemini structured output is not a JSON object")
    return data


def _backoff_seconds(attempt: int) -> float:
    return min(6.0, 1.2 * (attempt + 1))


def _is_timeout(exc: BaseException) -> bool:
    reason = getattr(exc, "reason", None)
    return (
        isinstance(exc, TimeoutError)
        or isinstance(reason, TimeoutError)
        or "timed out" in f"{exc} {reason or ''}".lower()
    )


class GeminiLLM(LLMPort):
    """Generative Language REST client for schema-constrained JSON replies."""

    provider_name = "gemini"

    def __init__(
        self,
        *,
        api_key: str,
        model_name: str,
        timeout_seconds: int = 90,
        max_retries: int = 0,
        base_url: str = GOOGLE_AI_BASE_URL,
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = max(3, int(timeout_seconds))
        self.max_retries = max(0, int(max_retries))
        self.base_url = base_url.rstrip("/")

    def generate_structured(
        self,
        *,
        prompt: str,
        schema: dict[str, Any],
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        model_name = model or self.model_name
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt[:_MAX_PROMPT_CHARS]}]}],
            "systemInstruction": {
                "parts": [{"text": (system_prompt or "Return strict JSON only.")[:_MAX_SYSTEM_PROMPT_CHARS]}],
            },
            "generationConfig": {
                "temperature": _DEFAULT_TEMPERATURE if temperature is None else temperature,
                "responseMimeType": "application/json",
                "responseSchema": _to_gemini_response_schema(schema),
            },
        }

        started = time.monotonic()
        body = self._post(model_name, payload)
        data = self._read_reply(body)
        logger.debug("Gemini %s replied in %.0f ms", model_name, (time.monotonic() - started) * 1000)
        return data

    def _endpoint(self, model_name: str) -> str:
        return f"{self.base_url}/models/{parse.quote(model_name)}:generateContent?key={parse.quote(self.api_key)}"

    def _post(self, model_name: str, payload: dict[str, Any]) -> str:
        req = request.Request(
            url=self._endpoint(model_name),
            method="POST",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                return self._send(req)
            except GeminiError as exc:
                if not exc.retryable or attempt + 1 >= attempts:
                    raise
                logger.warning("Gemini call failed (%s), retrying (attempt %d/%d)", exc, attempt + 2, attempts)
                time.sleep(_backoff_seconds(attempt))
        raise GeminiError(f"Gemini API gave no reply after {attempts} attempts")

    def _send(self, req: request.Request) -> str:
        """One HTTP round trip; failures come back as :class:`GeminiError`."""
        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as resp:
                return resp.read().decode("utf-8")
        except urlerror.HTTPError as exc:
            try:
                detail = exc.read().decode("utf-8")
            except Exception:
                detail = str(exc)
            raise GeminiError(
                f"Gemini API error ({exc.code}): {detail}",
                status_code=exc.code,
                retryable=exc.code in _RETRYABLE_STATUS,
            ) from exc
        except urlerror.URLError as exc:
            raise GeminiError(f"Gemini API connection error: {exc}", retryable=_is_timeout(exc)) from exc
        except TimeoutError as exc:
            raise GeminiError(f"Gemini API timeout (timeout={self.timeout_seconds}s)", retryable=True) from exc

    @staticmethod
    def _read_reply(body: str) -> dict[str, Any]:
        parsed = json.loads(body)

        block_reason = (parsed.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise GeminiError(f"Gemini blocked the prompt: {block_reason}")

        candidates = parsed.get("candidates") or []
        if not candidates:
            raise GeminiError("Gemini response has no candidates")
        candidate = candidates[0]

        finish_reason = candidate.get("finishReason")
        if finish_reason in _BLOCKED_FINISH_REASONS:
            raise GeminiError(f"Gemini stopped generating: {finish_reason}")

        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text") or "" for part in parts if isinstance(part, dict))
        if not text.strip():
            raise GeminiError("No text received from Gemini response")

        usage = parsed.get("usageMetadata") or {}
        if usage:
            logger.debug(
                "Gemini usage: prompt=%s output=%s tokens",
                usage.get("promptTokenCount"),
                usage.get("candidatesTokenCount"),
            )
        return extract_json_object(text)
