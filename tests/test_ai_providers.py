import pytest
import requests

import ai_providers
from ai_providers import (
    GeminiProvider,
    GroqProvider,
    build_provider,
    build_system_prompt,
)
from config import ChatSettings


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


@pytest.fixture
def fake_post(monkeypatch):
    """Replace requests.post; set .response or .exc before calling."""

    class Recorder:
        response = FakeResponse(200, {})
        exc = None
        calls = []

        def __call__(self, url, json=None, headers=None, timeout=None):
            self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
            if self.exc:
                raise self.exc
            return self.response

    recorder = Recorder()
    recorder.calls = []
    monkeypatch.setattr(ai_providers.requests, "post", recorder)
    return recorder


def _groq():
    return GroqProvider(api_key="gsk_test1234", model="llama-3.3-70b-versatile", timeout=5)


def _gemini():
    return GeminiProvider(api_key="AIza-test", model="gemini-2.5-flash", timeout=5)


# ── Groq ─────────────────────────────────────────────────────────────────────

def test_groq_success_returns_text_verbatim(fake_post):
    fake_post.response = FakeResponse(200, {"choices": [{"message": {"content": "💼 We hire!"}}]})
    result = _groq().generate("Are you hiring?", "CTX")

    assert result.ok
    assert result.text == "💼 We hire!"
    call = fake_post.calls[0]
    assert call["url"].endswith("/openai/v1/chat/completions")
    assert call["headers"]["Authorization"] == "Bearer gsk_test1234"
    assert call["timeout"] == 5
    messages = call["json"]["messages"]
    assert messages[0]["role"] == "system" and "CTX" in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "Are you hiring?"}
    assert call["json"]["max_tokens"] == 500


def test_groq_non_2xx_is_http_status_error(fake_post):
    fake_post.response = FakeResponse(429, {"error": "rate limited"}, text="rate limited")
    result = _groq().generate("hi", "CTX")
    assert not result.ok
    assert result.error.kind == "http_status"
    assert "429" in result.error.detail


def test_groq_timeout(fake_post):
    fake_post.exc = requests.Timeout("slow")
    result = _groq().generate("hi", "CTX")
    assert result.error.kind == "timeout"


def test_groq_connection_error_is_network(fake_post):
    fake_post.exc = requests.ConnectionError("refused")
    result = _groq().generate("hi", "CTX")
    assert result.error.kind == "network"


@pytest.mark.parametrize("payload", [
    None,                                         # body is not JSON
    {"choices": []},
    {"choices": [{"message": {}}]},
    {"choices": [{"message": {"content": "   "}}]},
    ["unexpected"],
])
def test_groq_malformed_bodies(fake_post, payload):
    fake_post.response = FakeResponse(200, payload)
    result = _groq().generate("hi", "CTX")
    assert not result.ok
    assert result.error.kind == "malformed"


# ── Gemini ───────────────────────────────────────────────────────────────────

def test_gemini_success_joins_parts(fake_post):
    fake_post.response = FakeResponse(200, {
        "candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "there"}]}}],
    })
    result = _gemini().generate("hi", "SITE TEXT")

    assert result.ok
    assert result.text == "Hello there"
    call = fake_post.calls[0]
    assert "gemini-2.5-flash:generateContent" in call["url"]
    assert call["headers"]["x-goog-api-key"] == "AIza-test"
    assert "SITE TEXT" in call["json"]["systemInstruction"]["parts"][0]["text"]
    assert call["json"]["contents"][0]["parts"][0]["text"] == "hi"


def test_gemini_without_candidates_is_malformed(fake_post):
    fake_post.response = FakeResponse(200, {"promptFeedback": {"blockReason": "SAFETY"}})
    result = _gemini().generate("hi", "SITE TEXT")
    assert result.error.kind == "malformed"


def test_gemini_server_error(fake_post):
    fake_post.response = FakeResponse(503, None, text="unavailable")
    result = _gemini().generate("hi", "SITE TEXT")
    assert result.error.kind == "http_status"
    assert result.error.provider == "gemini"


# ── Prompt + selection ───────────────────────────────────────────────────────

def test_system_prompt_constrains_to_context():
    prompt = build_system_prompt("CONTEXT BLOB", "V-Bot", "Acme Staffing")
    assert "CONTEXT BLOB" in prompt
    assert "V-Bot" in prompt
    assert "Only answer based on the provided context" in prompt
    assert "I'm sorry, I can help only with Acme Staffing related information." in prompt


def test_no_keys_disables_ai():
    assert build_provider(ChatSettings()) is None


def test_groq_preferred_when_both_keys_set():
    provider = build_provider(ChatSettings(groq_api_key="g", gemini_api_key="k", ai_timeout=3))
    assert isinstance(provider, GroqProvider)
    assert provider.timeout == 3


def test_gemini_used_when_only_gemini_key_set():
    provider = build_provider(ChatSettings(gemini_api_key="k", gemini_model="gemini-1.5-flash"))
    assert isinstance(provider, GeminiProvider)
    assert provider.model == "gemini-1.5-flash"


def test_forced_provider_without_key_is_disabled():
    assert build_provider(ChatSettings(ai_provider="gemini", groq_api_key="g")) is None


def test_provider_none_disables_ai_even_with_keys():
    assert build_provider(ChatSettings(ai_provider="none", groq_api_key="g")) is None
