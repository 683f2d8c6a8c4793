"""
knowledge_loader.py
-------------------
Scrapes the public website into a plain-text knowledge snapshot used to
ground the AI responder when CHAT_GROUNDING=site.

The snapshot lives in a KnowledgeStore owned by the app.  The loader swaps
in a new snapshot when a scrape finishes; the chat path only ever reads it.
Scrape failures are logged and skipped – they never raise.
"""

import logging
import re
import threading
from typing import Iterable, Optional

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    ),
}

# Page chrome that only confuses the model.
_STRIP_TAGS = ["script", "style", "nav", "footer", "header", "noscript", "iframe"]

# Pages shorter than this are usually error shells or JS-only placeholders.
_MIN_PAGE_CHARS = 200


class KnowledgeStore:
    """Holds the current knowledge snapshot; safe to read from any thread."""

    def __init__(self, text: str = ""):
        self._lock = threading.Lock()
        self._text = text

    def get(self) -> str:
        with self._lock:
            return self._text

    def replace(self, text: str) -> None:
        with self._lock:
            self._text = text or ""

    @property
    def is_loaded(self) -> bool:
        return bool(self.get())


def limit_text(text: str, max_chars: int) -> str:
    """Trim *text* to *max_chars*, marking the cut with '...'."""
    if len(text) > max_chars:
        return text[:max_chars] + "..."
    return text


def scrape_page(url: str, timeout: int = 10) -> str:
    """
    Fetch *url* and return its visible body text with whitespace collapsed.
    Returns "" on any request failure.
    """
    try:
        response = requests.get(url, headers=_HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Error scraping %s: %s", url, exc)
        return ""

    soup = BeautifulSoup(response.text, "html.parser")
    for tag in soup(_STRIP_TAGS):
        tag.decompose()

    body = soup.body or soup
    return re.sub(r"\s+", " ", body.get_text(separator=" ")).strip()


def load_knowledge(urls: Iterable[str], store: Optional[KnowledgeStore] = None) -> str:
    """
    Scrape every URL, join the usable pages into one snapshot and (when a
    store is given) publish it.  Returns the combined text.
    """
    logger.info("Starting knowledge base update...")
    blocks = []
    for url in urls:
        text = scrape_page(url)
        if len(text) < _MIN_PAGE_CHARS:
            logger.info("Skipped (no content): %s", url)
            continue
        blocks.append(f"--- SOURCE: {url} ---\n{text}")
        logger.info("Scraped: %s (%d chars)", url, len(text))

    combined = "\n\n".join(blocks)
    if store is not None:
        store.replace(combined)
    logger.info("Knowledge loading complete: %d page(s), %d chars", len(blocks), len(combined))
    return combined


def start_background_load(urls: Iterable[str], store: KnowledgeStore) -> threading.Thread:
    """Run load_knowledge in a daemon thread so the app can start serving at once."""
    thread = threading.Thread(
        target=load_knowledge,
        args=(tuple(urls), store),
        name="knowledge-loader",
        daemon=True,
    )
    thread.start()
    return thread
