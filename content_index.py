"""
content_index.py
================
Loads the curated site-content index the chatbot answers from.

Storage format — data/site_content.json:
{
    "responses": {"identity": <str>, "greeting": <str>, "fallback": <str>},
    "sections": [
        {
            "id":       <unique string>,
            "keywords": [<lowercase string>, ...],
            "content":  <string returned verbatim>,
            "boosts":   [{"triggers": [<string>, ...], "points": <int>}, ...]
        },
        ...
    ]
}

Section order is significant: when two sections score the same, the one
listed first wins.

Public API
----------
load_content_index(path=None) -> ContentIndex
get_content_index()           -> ContentIndex   (loaded once, then cached)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

_CONTENT_JSON = os.path.join(os.path.dirname(__file__), "data", "site_content.json")


class ContentIndexError(ValueError):
    """Raised when the content index file is missing or malformed."""


@dataclass(frozen=True)
class SectionBoost:
    """Fixed bonus for a section when any trigger appears in the message."""

    triggers: tuple
    points: int


@dataclass(frozen=True)
class ContentSection:
    id: str
    keywords: tuple
    content: str
    boosts: tuple = field(default_factory=tuple)


@dataclass(frozen=True)
class ContentIndex:
    """Ordered, immutable set of sections plus the canned zero-match replies."""

    sections: tuple
    identity_response: str
    greeting_response: str
    general_fallback: str

    def section(self, section_id: str) -> Optional[ContentSection]:
        for sec in self.sections:
            if sec.id == section_id:
                return sec
        return None

    def to_context(self) -> str:
        """Render the sections as JSON text for grounding an AI prompt."""
        return json.dumps(
            [
                {"id": s.id, "keywords": list(s.keywords), "content": s.content}
                for s in self.sections
            ],
            ensure_ascii=False,
        )


# ── Parsing / validation helpers ─────────────────────────────────────────────

def _terms(raw, where: str) -> tuple:
    """Lowercase + strip a list of match terms; reject empties."""
    if not isinstance(raw, list) or not raw:
        raise ContentIndexError(f"{where}: expected a non-empty list")
    terms = []
    for item in raw:
        if not isinstance(item, str) or not item.strip():
            raise ContentIndexError(f"{where}: blank or non-string term {item!r}")
        terms.append(item.strip().lower())
    return tuple(terms)


def _text(raw, where: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ContentIndexError(f"{where}: expected non-empty text")
    return raw.strip()


def _parse_boost(raw, where: str) -> SectionBoost:
    if not isinstance(raw, dict):
        raise ContentIndexError(f"{where}: boost must be an object")
    points = raw.get("points")
    if not isinstance(points, int) or isinstance(points, bool) or points <= 0:
        raise ContentIndexError(f"{where}: points must be a positive integer")
    return SectionBoost(triggers=_terms(raw.get("triggers"), f"{where}.triggers"), points=points)


def _parse_section(raw, position: int) -> ContentSection:
    if not isinstance(raw, dict):
        raise ContentIndexError(f"sections[{position}]: must be an object")
    section_id = _text(raw.get("id"), f"sections[{position}].id")
    where = f"section '{section_id}'"
    boosts = raw.get("boosts") or []
    if not isinstance(boosts, list):
        raise ContentIndexError(f"{where}: boosts must be a list")
    return ContentSection(
        id=section_id,
        keywords=_terms(raw.get("keywords"), f"{where}.keywords"),
        content=_text(raw.get("content"), f"{where}.content"),
        boosts=tuple(_parse_boost(b, f"{where}.boosts[{i}]") for i, b in enumerate(boosts)),
    )


# ── Public API ────────────────────────────────────────────────────────────────

def load_content_index(path: Optional[str] = None) -> ContentIndex:
    """
    Read and validate the content index at *path* (bundled file by default).

    Keywords and boost triggers are normalised to lowercase so matching only
    has to lowercase the incoming message.  Raises ContentIndexError on any
    problem; a chatbot with a broken index should not start.
    """
    path = path or _CONTENT_JSON
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as exc:
        raise ContentIndexError(f"Could not read content index {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ContentIndexError(f"Content index {path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ContentIndexError("Content index root must be an object")

    raw_sections = data.get("sections")
    if not isinstance(raw_sections, list) or not raw_sections:
        raise ContentIndexError("Content index has no sections")

    sections = tuple(_parse_section(raw, i) for i, raw in enumerate(raw_sections))

    seen: set = set()
    for sec in sections:
        if sec.id in seen:
            raise ContentIndexError(f"Duplicate section id '{sec.id}'")
        seen.add(sec.id)

    responses = data.get("responses")
    if not isinstance(responses, dict):
        raise ContentIndexError("Content index is missing the 'responses' object")

    index = ContentIndex(
        sections=sections,
        identity_response=_text(responses.get("identity"), "responses.identity"),
        greeting_response=_text(responses.get("greeting"), "responses.greeting"),
        general_fallback=_text(responses.get("fallback"), "responses.fallback"),
    )
    logger.info("Loaded content index: %d sections from %s", len(sections), path)
    return index


@lru_cache(maxsize=1)
def get_content_index() -> ContentIndex:
    """Process-wide content index, read from the bundled file on first use."""
    return load_content_index()
