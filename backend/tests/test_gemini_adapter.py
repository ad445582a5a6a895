import io
import json
from urllib import error as urlerror

import pytest

from wordnest.api.v1 import dependencies
from wordnest.core.config import get_settings
from wordnest.infra.llm import gemini
from wordnest.infra.llm.gemini import GeminiLLM, _to_gemini_response_schema, extract_json_object
from wordnest.infra.llm.mock import MockLLM
from wordnest.infra.llm.validate import SchemaValidationError, validate_llm_output


class _FakeResponse:
    def __init__(self, body: dict):
        self._raw = json.dumps(body).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _clear_caches() -> None:
    get_settings.cache_clear()
    dependencies.get_llm.cache_clear()


def test_response_schema_conversion_marks_nullable_fields():
    converted = _to_gemini_response_schema(
        {
            "type": "object",
            "required": ["word"],
            "properties": {
                "word": {"type": "string"},
                "phonetic": {"type": ["string", "null"]},
                "tags": {"type": "array", "items": {"type": "string", "enum": ["a", "b"]}},
            },
        }
    )

    assert converted["type"] == "OBJECT"
    assert converted["required"] == ["word"]
    assert converted["properties"]["phonetic"] == {"type": "STRING", "nullable": True}
    assert converted["properties"]["tags"]["items"] == {"type": "STRING", "enum": ["a", "b"]}


def test_extract_json_object_ignores_surrounding_text():
    assert extract_json_object('Sure! ```json\n{"translation": "alma"}\n```') == {"translation": "alma"}

    with pytest.raises(RuntimeError):
        extract_json_object("no json here")


def test_generate_structured_posts_schema_and_parses_reply(monkeypatch):
    captured = {}

    def _fake_urlopen(req, timeout):
        captured["url"] = req.full_url
        captured["payload"] = json.loads(req.data.decode("utf-8"))
        captured["timeout"] = timeout
        return _FakeResponse(_reply('{"translation": "alma"}'))

    monkeypatch.setattr(gemini.request, "urlopen", _fake_urlopen)
    llm = GeminiLLM(api_key="k-123", model_name="gemini-test", timeout_seconds=5)

    data = llm.generate_structured(prompt="apple", schema={"type": "object"}, system_prompt="Be brief.")

    assert data == {"translation": "alma"}
    assert "models/gemini-test:generateContent" in captured["url"]
    assert captured["timeout"] == 5
    assert captured["payload"]["generationConfig"]["temperature"] == 0.7
    assert captured["payload"]["generationConfig"]["responseSchema"] == {"type": "OBJECT"}
    assert captured["payload"]["systemInstruction"]["parts"][0]["text"] == "Be brief."


def test_retryable_http_errors_are_retried(monkeypatch):
    calls = []

    def _flaky_urlopen(req, timeout):
        calls.append(1)
        if len(calls) == 1:
            raise urlerror.HTTPError(req.full_url, 503, "busy", {}, io.BytesIO(b"busy"))
        return _FakeResponse(_reply('{"ok": true}'))

    monkeypatch.setattr(gemini.request, "urlopen", _flaky_urlopen)
    monkeypatch.setattr(gemini.time, "sleep", lambda seconds: None)

    data = GeminiLLM(api_key="k", model_name="m", max_retries=1).generate_structured(prompt="p", schema={})

    assert data == {"ok": True}
    assert len(calls) == 2


def test_client_errors_are_not_retried(monkeypatch):
    def _bad_request(req, timeout):
        raise urlerror.HTTPError(req.full_url, 400, "bad", {}, io.BytesIO(b"invalid key"))

    monkeypatch.setattr(gemini.request, "urlopen", _bad_request)

    with pytest.raises(RuntimeError, match="Gemini API error \\(400\\)"):
        GeminiLLM(api_key="k", model_name="m", max_retries=3).generate_structured(prompt="p", schema={})


def test_model_output_is_checked_against_the_schema():
    schema = {"type": "object", "required": ["adjustedText"], "properties": {"adjustedText": {"type": "string"}}}

    assert validate_llm_output({"adjustedText": "ok"}, schema, "adjustment") == {"adjustedText": "ok"}
    with pytest.raises(SchemaValidationError, match="adjustment"):
        validate_llm_output({"adjustedText": 3}, schema, "adjustment")
    with pytest.raises(SchemaValidationError):
        validate_llm_output(["not", "an", "object"], schema, "adjustment")


def test_llm_backend_selection(monkeypatch):
    monkeypatch.setenv("WORDNEST_LLM_BACKEND", "gemini")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    _clear_caches()
    try:
        assert isinstance(dependencies.get_llm(), MockLLM)

        monkeypatch.setenv("GEMINI_API_KEY", "k-live")
        _clear_caches()
        selected = dependencies.get_llm()
        assert isinstance(selected, GeminiLLM)
        assert selected.model_name == get_settings().gemini_model
    finally:
        monkeypatch.undo()
        _clear_caches()


@pytest.mark.parametrize(
    "reply, message",
    [
        ({"promptFeedback": {"blockReason": "SAFETY"}}, "blocked the prompt"),
        ({"candidates": []}, "no candidates"),
        ({"candidates": [{"finishReason": "SAFETY", "content": {"parts": [{"text": "{}"}]}}]}, "stopped generating"),
        ({"candidates": [{"content": {"parts": [{"text": "  "}]}}]}, "No text"),
    ],
)
def test_unusable_replies_raise(monkeypatch, reply, message):
    monkeypatch.setattr(gemini.request, "urlopen", lambda req, timeout: _FakeResponse(reply))

    with pytest.raises(RuntimeError, match=message):
        GeminiLLM(api_key="k", model_name="m").generate_structured(prompt="p", schema={})


def test_unknown_backend_and_blank_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("WORDNEST_LLM_BACKEND", "claude")
    monkeypatch.setenv("WORDNEST_NOTIFIER_BATCH_SIZE", "0")
    monkeypatch.setenv("WORDNEST_LLM_TIMEOUT_SECONDS", "  ")
    monkeypatch.setenv("GEMINI_API_KEY", "k-live")
    _clear_caches()
    try:
        settings = get_settings()
        assert settings.llm_backend == "mock"
        assert settings.uses_gemini is False
        assert settings.notifier_batch_size == 10
        assert settings.llm_timeout_seconds == 90
    finally:
        monkeypatch.undo()
        _clear_caches()
