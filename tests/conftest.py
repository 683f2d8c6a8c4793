import pytest

from ai_providers import GenerationResult, ProviderError
from chatbot_engine import resolve_fallback
from content_index import ContentIndex, ContentSection, SectionBoost, get_content_index

_CHAT_ENV = (
    "GROQ_API_KEY", "GROQ_MODEL", "GOOGLE_API_KEY", "GEMINI_API_KEY", "GEMINI_MODEL",
    "AI_PROVIDER", "AI_TIMEOUT_SECONDS", "CHAT_GROUNDING", "NOT_READY_MODE",
    "CHAT_REPLY_FIELD", "CONTENT_INDEX_PATH", "KNOWLEDGE_URLS", "KNOWLEDGE_MAX_CHARS",
    "BOT_NAME", "COMPANY_NAME", "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Strip every chatbot setting so a developer's shell can't leak in."""
    for name in _CHAT_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def index():
    return get_content_index()


def make_section(section_id, keywords, content=None, boosts=()):
    return ContentSection(
        id=section_id,
        keywords=tuple(keywords),
        content=content or f"{section_id} content",
        boosts=tuple(SectionBoost(tuple(t), p) for t, p in boosts),
    )


def make_index(*sections):
    return ContentIndex(
        sections=tuple(sections),
        identity_response="identity reply",
        greeting_response="greeting reply",
        general_fallback="general reply",
    )


class StubProvider:
    """Records calls and replays a fixed GenerationResult."""

    name = "stub"

    def __init__(self, text=None, error_kind=None):
        if error_kind:
            self.result = GenerationResult(error=ProviderError("stub", error_kind, "boom"))
        else:
            self.result = GenerationResult(text=text)
        self.calls = []

    def generate(self, message, context):
        self.calls.append((message, context))
        return self.result


class RaisingProvider:
    """Provider whose generate blows up with a non-transport error."""

    name = "raising"

    def __init__(self, exc=None):
        self.exc = exc or RuntimeError("sdk bug")
        self.calls = 0

    def generate(self, message, context):
        self.calls += 1
        raise self.exc


class CountingMatcher:
    """Wraps resolve_fallback and counts invocations."""

    def __init__(self):
        self.calls = 0

    def __call__(self, message, index):
        self.calls += 1
        return resolve_fallback(message, index)
