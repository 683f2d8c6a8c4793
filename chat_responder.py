"""
chat_responder.py
-----------------
Resolves one chat message to a reply.

  1. AI attempt   – only when a provider is configured and its grounding
                    context is ready
  2. Site search  – chatbot_engine fallback, used for every other case

The AI path is an optimisation, never a dependency: provider errors are
logged and downgraded to the fallback, so respond() always returns text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from chatbot_engine import resolve_fallback
from config import ChatSettings
from content_index import ContentIndex
from knowledge_loader import KnowledgeStore, limit_text

logger = logging.getLogger(__name__)

NOT_READY_REPLY = (
    "I am currently loading my knowledge base. Please try again in a few seconds."
)


@dataclass(frozen=True)
class ChatReply:
    text: str
    source: str   # "ai" | "content" | "identity" | "greeting" | "fallback" | "not_ready"


class ChatResponder:
    """
    Owns everything a chat request needs: settings, the content index, the
    knowledge snapshot and the (optional) AI provider.  Nothing here is
    module-global, so tests build one with whatever collaborators they need.
    """

    def __init__(
        self,
        settings: ChatSettings,
        index: ContentIndex,
        provider=None,
        knowledge: Optional[KnowledgeStore] = None,
        matcher: Callable = resolve_fallback,
    ):
        self.settings = settings
        self.index = index
        self.provider = provider
        self.knowledge = knowledge if knowledge is not None else KnowledgeStore()
        self._matcher = matcher

    @property
    def provider_name(self) -> Optional[str]:
        return getattr(self.provider, "name", None) if self.provider else None

    def _grounding_context(self) -> Optional[str]:
        """Context for the AI prompt, or None while the site snapshot is empty."""
        if self.settings.grounding == "site":
            snapshot = self.knowledge.get()
            if not snapshot:
                return None
            return limit_text(snapshot, self.settings.knowledge_max_chars)
        return self.index.to_context()

    def _try_primary(self, message: str):
        """
        Returns a ChatReply when the AI path settles the request (success or
        the not-ready notice), otherwise None to signal "use the fallback".
        """
        if self.provider is None:
            return None

        context = self._grounding_context()
        if context is None:
            if self.settings.not_ready_mode == "message":
                return ChatReply(NOT_READY_REPLY, "not_ready")
            logger.info("Knowledge base not loaded yet – using site search")
            return None

        try:
            result = self.provider.generate(message, context)
        except Exception:
            logger.exception("AI provider %s raised – using site search", self.provider_name)
            return None
        if result.ok:
            return ChatReply(result.text, "ai")

        logger.warning(
            "AI provider failed (%s); key %s – using site search",
            result.error, self.settings.masked_key(self.provider_name),
        )
        return None

    def _fallback(self, message: str) -> ChatReply:
        text, source = self._matcher(message, self.index)
        return ChatReply(text, source)

    def respond(self, message: str) -> ChatReply:
        reply = self._try_primary(message)
        if reply is None:
            reply = self._fallback(message)
        logger.debug("Chat reply source=%s", reply.source)
        return reply
