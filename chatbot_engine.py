"""
chatbot_engine.py  –  V-Bot site-search fallback
=====================================================
Answers a chat message from the curated site-content index without any
external service.  Used whenever the AI responder is unconfigured, not ready,
or fails, so the chat endpoint always has something useful to say.

Scoring (per section, message lowercased once):
  1. Keyword containment  – +2 for a matched keyword longer than 4 chars,
                            +1 for a shorter one
  2. Section boosts       – fixed bonus when a strongly indicative word for
                            THAT section appears (never shared across sections)

The first section to reach the highest score wins; later sections need a
strictly higher score to replace it.  If nothing scores, the message falls
through to canned replies:
  who-are-you / bot  →  identity
  hello / "hi "      →  greeting
  anything else      →  general fallback
"""

import logging
from dataclasses import dataclass
from typing import Optional

from content_index import ContentIndex, ContentSection, get_content_index

logger = logging.getLogger(__name__)

# Keywords longer than this earn the higher weight.
_LONG_KEYWORD_CHARS = 4

IDENTITY_TRIGGERS = ("who are you", "bot")
# "hi " keeps its trailing space so words like "hiring" or "this" don't greet.
GREETING_TRIGGERS = ("hello", "hi ")


@dataclass(frozen=True)
class ScoredCandidate:
    section: ContentSection
    score: int


# ═══════════════════════════════════════════════════════════════════════════
#  SCORING
# ═══════════════════════════════════════════════════════════════════════════

def keyword_points(keyword: str) -> int:
    return 2 if len(keyword) > _LONG_KEYWORD_CHARS else 1


def score_section(section: ContentSection, normalized: str) -> int:
    """
    Score one section against an already-lowercased message.
    Only this section's own boosts are considered.
    """
    score = 0
    for keyword in section.keywords:
        if keyword in normalized:
            score += keyword_points(keyword)

    for boost in section.boosts:
        if any(trigger in normalized for trigger in boost.triggers):
            score += boost.points

    return score


def score_sections(message: str, index: ContentIndex) -> list:
    """Return a ScoredCandidate for every section, in index order."""
    normalized = (message or "").lower()
    return [
        ScoredCandidate(section=section, score=score_section(section, normalized))
        for section in index.sections
    ]


def find_best_match(message: str, index: ContentIndex) -> Optional[ScoredCandidate]:
    """
    Highest-scoring section, or None when every score is zero.
    Ties go to the section listed first in the index.
    """
    best: Optional[ScoredCandidate] = None
    max_score = 0

    for candidate in score_sections(message, index):
        if candidate.score > max_score:
            max_score = candidate.score
            best = candidate

    return best


# ═══════════════════════════════════════════════════════════════════════════
#  RESPONSE SELECTION
# ═══════════════════════════════════════════════════════════════════════════

def resolve_fallback(message: str, index: ContentIndex) -> tuple:
    """
    Pick the fallback reply for *message*.
    Returns (response_text, source) where source is "content" when a section
    matched, otherwise "identity", "greeting" or "fallback".
    """
    normalized = (message or "").lower()

    best = find_best_match(normalized, index)
    if best is not None:
        logger.debug("Fallback matched section '%s' (score=%d)", best.section.id, best.score)
        return best.section.content, "content"

    if any(t in normalized for t in IDENTITY_TRIGGERS):
        return index.identity_response, "identity"
    if any(t in normalized for t in GREETING_TRIGGERS):
        return index.greeting_response, "greeting"

    logger.debug("Fallback found no relevant section")
    return index.general_fallback, "fallback"


def get_fallback_response(message: str, index: Optional[ContentIndex] = None) -> str:
    """Site-search reply for *message*; uses the bundled index when none is given."""
    text, _source = resolve_fallback(message, index or get_content_index())
    return text


# ── Dev self-test ─────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    print("=== chatbot_engine self-test ===")

    idx = get_content_index()

    # Test 1 — contact wins on "address"
    text, src = resolve_fallback("What are your office hours and address?", idx)
    assert text == idx.section("contact").content, f"T1: expected contact section, got {src}"
    print("  T1 contact / address      ✓")

    # Test 2 — process boost
    text, src = resolve_fallback("How does your recruitment process work?", idx)
    assert text == idx.section("process").content, f"T2: expected process section, got {src}"
    print("  T2 process boost          ✓")

    # Test 3 — bare "hi" is not a greeting
    _, src = resolve_fallback("hi", idx)
    assert src == "fallback", f"T3: expected fallback, got {src}"
    print("  T3 bare 'hi' → fallback   ✓")

    # Test 4 — "bot" → identity
    _, src = resolve_fallback("who built this bot", idx)
    assert src == "identity", f"T4: expected identity, got {src}"
    print("  T4 bot → identity         ✓")

    print("\nAll tests passed ✓")
