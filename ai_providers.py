"""
ai_providers.py
---------------
Thin HTTP clients for the generative-AI services the chatbot can delegate to.

Every provider exposes the same capability:

    generate(message, context) -> GenerationResult

and never raises for transport problems.  Timeouts, connection errors,
non-2xx statuses and unexpected response bodies all come back as a
GenerationResult carrying a ProviderError, so the caller can decide to fall
back without try/except plumbing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from config import ChatSettings

logger = logging.getLogger(__name__)

_GROQ_URL   = "https://api.groq.com/openai/v1/chat/completions"
_GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

_TEMPERATURE = 0.7
_MAX_TOKENS  = 500

REFUSAL_TEMPLATE = "I'm sorry, I can help only with {company} related information."


@dataclass(frozen=True)
class ProviderError:
    provider: str
    kind: str          # "timeout" | "network" | "http_status" | "malformed"
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.provider} {self.kind}: {self.detail}" if self.detail else f"{self.provider} {self.kind}"


@dataclass(frozen=True)
class GenerationResult:
    text: Optional[str] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text)


def build_system_prompt(context: str, bot_name: str, company_name: str) -> str:
    """Instructions shared by every provider: answer from *context* or refuse."""
    refusal = REFUSAL_TEMPLATE.format(company=company_name)
    return (
        f'You are {bot_name}, a professional AI assistant for "{company_name}".\n'
        "Use the following context about the company to answer the user's "
        "question briefly and professionally.\n\n"
        f"CONTEXT:\n{context}\n\n"
        "Key Rules:\n"
        "1. Only answer based on the provided context.\n"
        "2. Format your response in a structured, clean way: short paragraphs, "
        "bullet points and **bold** key terms.\n"
        "3. Use a few friendly emojis (🚀 growth, 💼 jobs, 🤝 partnership, "
        "💻 tech/IT, ✨ highlights).\n"
        "4. Avoid long blocks of text.\n"
        f'5. If the answer is not in the context, reply exactly: "{refusal}"'
    )


# --------------------------------------------------------------------------- #
#  Internal helpers                                                            #
# --------------------------------------------------------------------------- #

def _post_json(provider: str, url: str, payload: dict, headers: dict,
               timeout: float):
    """
    POST *payload* and return (parsed_json, None) or (None, ProviderError).
    """
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.Timeout:
        return None, ProviderError(provider, "timeout", f"no reply within {timeout}s")
    except requests.RequestException as exc:
        return None, ProviderError(provider, "network", str(exc))

    if not 200 <= response.status_code < 300:
        body = (response.text or "")[:200]
        return None, ProviderError(provider, "http_status", f"{response.status_code} {body}".strip())

    try:
        return response.json(), None
    except ValueError:
        return None, ProviderError(provider, "malformed", "response body is not JSON")


# --------------------------------------------------------------------------- #
#  Providers                                                                   #
# --------------------------------------------------------------------------- #

class GroqProvider:
    """Groq's OpenAI-compatible chat-completions endpoint."""

    name = "groq"

    def __init__(self, api_key: str, model: str, timeout: float,
                 bot_name: str = "V-Bot", company_name: str = "Vagarious Solutions"):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.bot_name = bot_name
        self.company_name = company_name

    def generate(self, message: str, context: str) -> GenerationResult:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system",
                 "content": build_system_prompt(context, self.bot_name, self.company_name)},
                {"role": "user", "content": message},
            ],
            "temperature": _TEMPERATURE,
            "max_tokens": _MAX_TOKENS,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        data, error = _post_json(self.name, _GROQ_URL, payload, headers, self.timeout)
        if error:
            return GenerationResult(error=error)

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return GenerationResult(error=ProviderError(self.name, "malformed", "no choices[0].message.content"))
        if not isinstance(text, str) or not text.strip():
            return GenerationResult(error=ProviderError(self.name, "malformed", "empty completion"))
        return GenerationResult(text=text)


class GeminiProvider:
    """Google Gemini generateContent REST endpoint."""

    name = "gemini"

    def __init__(self, api_key: str, model: str, timeout: float,
                 bot_name: str = "V-Bot", company_name: str = "Vagarious Solutions"):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.bot_name = bot_name
        self.company_name = company_name

    def generate(self, message: str, context: str) -> GenerationResult:
        payload = {
            "systemInstruction": {
                "parts": [{"text": build_system_prompt(context, self.bot_name, self.company_name)}],
            },
            "contents": [{"role": "user", "parts": [{"text": message}]}],
            "generationConfig": {
                "temperature": _TEMPERATURE,
                "maxOutputTokens": _MAX_TOKENS,
            },
        }
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        url = _GEMINI_URL.format(model=self.model)
        data, error = _post_json(self.name, url, payload, headers, self.timeout)
        if error:
            return GenerationResult(error=error)

        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        except (KeyError, IndexError, TypeError):
            return GenerationResult(error=ProviderError(self.name, "malformed", "no candidates[0].content.parts"))
        if not text.strip():
            return GenerationResult(error=ProviderError(self.name, "malformed", "empty candidate text"))
        return GenerationResult(text=text)


def build_provider(settings: ChatSettings):
    """
    Provider selected by settings, or None when the AI responder is disabled.

    AI_PROVIDER forces a choice; otherwise the first provider with a key
    wins (Groq, then Gemini).  A forced provider without a key is disabled.
    """
    choice = settings.ai_provider
    if choice == "none":
        return None
    if not choice:
        if settings.groq_api_key:
            choice = "groq"
        elif settings.gemini_api_key:
            choice = "gemini"
        else:
            logger.info("No AI API key configured – using site-search mode only")
            return None

    key = settings.active_key(choice)
    if not key:
        logger.warning("AI_PROVIDER=%s but no API key is set – using site-search mode only", choice)
        return None

    common = dict(
        api_key=key,
        timeout=settings.ai_timeout,
        bot_name=settings.bot_name,
        company_name=settings.company_name,
    )
    if choice == "groq":
        provider = GroqProvider(model=settings.groq_model, **common)
    else:
        provider = GeminiProvider(model=settings.gemini_model, **common)
    logger.info("AI provider: %s (model=%s, key %s)", choice, provider.model, settings.masked_key(choice))
    return provider
