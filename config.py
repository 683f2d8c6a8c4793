"""
config.py
---------
Runtime settings for the chatbot, read from environment variables.

Secrets (GROQ_API_KEY, GOOGLE_API_KEY) are never hardcoded.  A missing key
simply disables the AI responder; the site-search fallback always works.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Optional

_DEFAULT_KNOWLEDGE_URLS = (
    "https://vagarioussolutions.com",
    "https://vagarioussolutions.com/about",
    "https://vagarioussolutions.com/services",
    "https://vagarioussolutions.com/contact",
)

_PROVIDERS      = {"", "groq", "gemini", "none"}
_GROUNDINGS     = {"index", "site"}
_NOT_READY      = {"fallback", "message"}
_REPLY_FIELDS   = {"response", "reply"}


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _choice(name: str, value: str, allowed: set) -> str:
    value = value.lower()
    if value not in allowed:
        raise ValueError(
            f"{name}={value!r} is not valid; expected one of {sorted(a for a in allowed if a)}"
        )
    return value


def _positive_number(name: str, raw: str, cast):
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name}={raw!r} is not a number") from None
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be a positive finite number, got {value}")
    return value


def _split_urls(raw: str) -> tuple:
    return tuple(u.strip() for u in raw.split(",") if u.strip())


@dataclass(frozen=True)
class ChatSettings:
    """Typed container for chatbot runtime configuration."""

    groq_api_key: str = ""
    groq_model: str = "llama-3.3-70b-versatile"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    ai_provider: str = ""
    ai_timeout: float = 8.0
    grounding: str = "index"
    not_ready_mode: str = "fallback"
    reply_field: str = "response"
    content_index_path: str = ""
    knowledge_urls: tuple = _DEFAULT_KNOWLEDGE_URLS
    knowledge_max_chars: int = 30000
    bot_name: str = "V-Bot"
    company_name: str = "Vagarious Solutions"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ChatSettings":
        raw_urls = _env("KNOWLEDGE_URLS")
        return cls(
            groq_api_key=_env("GROQ_API_KEY"),
            groq_model=_env("GROQ_MODEL", cls.groq_model),
            # Gemini keys were issued under both names over time.
            gemini_api_key=_env("GOOGLE_API_KEY") or _env("GEMINI_API_KEY"),
            gemini_model=_env("GEMINI_MODEL", cls.gemini_model),
            ai_provider=_choice("AI_PROVIDER", _env("AI_PROVIDER"), _PROVIDERS),
            ai_timeout=_positive_number(
                "AI_TIMEOUT_SECONDS", _env("AI_TIMEOUT_SECONDS", "8"), float
            ),
            grounding=_choice("CHAT_GROUNDING", _env("CHAT_GROUNDING", "index"), _GROUNDINGS),
            not_ready_mode=_choice(
                "NOT_READY_MODE", _env("NOT_READY_MODE", "fallback"), _NOT_READY
            ),
            reply_field=_choice(
                "CHAT_REPLY_FIELD", _env("CHAT_REPLY_FIELD", "response"), _REPLY_FIELDS
            ),
            content_index_path=_env("CONTENT_INDEX_PATH"),
            knowledge_urls=_split_urls(raw_urls) if raw_urls else _DEFAULT_KNOWLEDGE_URLS,
            knowledge_max_chars=_positive_number(
                "KNOWLEDGE_MAX_CHARS", _env("KNOWLEDGE_MAX_CHARS", "30000"), int
            ),
            bot_name=_env("BOT_NAME", cls.bot_name),
            company_name=_env("COMPANY_NAME", cls.company_name),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )

    def active_key(self, provider: str) -> str:
        if provider == "groq":
            return self.groq_api_key
        if provider == "gemini":
            return self.gemini_api_key
        return ""

    def masked_key(self, provider: str) -> Optional[str]:
        """Last four characters of the provider key, for logs only."""
        key = self.active_key(provider)
        return f"...{key[-4:]}" if key else None
