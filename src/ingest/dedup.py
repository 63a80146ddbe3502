"""News item deduplication.

Two independent checks, either of which marks an item as a duplicate:

  1. Link match: canonical article URL already persisted      → duplicate
  2. Similarity: weighted title/body Jaccard against items
     published in the trailing window (7 days) ≥ 0.85        → duplicate

Similarity = 0.5 × title Jaccard + 0.5 × body Jaccard.  A near-identical
title (Jaccard ≥ 0.90) adds ``(title − 0.90) × 0.2`` on top, capped at 1.0,
so rewritten bodies under the same headline still collide.

Malformed links skip the link check and go straight to the similarity
check.  The history window is loaded once per run and treated as a
read-only snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import date, timedelta
from typing import Protocol
from urllib.parse import urlparse, urlunparse

from ingest.news_types import DedupDecision, NormalizedItem, RecentItem
from ingest.validation import is_valid_absolute_url

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------
SIMILARITY_THRESHOLD = 0.85
TITLE_WEIGHT = 0.5
BODY_WEIGHT = 0.5
TITLE_BOOST_THRESHOLD = 0.90
TITLE_BOOST_FACTOR = 0.2

DEFAULT_WINDOW_DAYS = 7

_NON_WORD_RE = re.compile(r"[^\w\s가-힣]")


class DedupStore(Protocol):
    """Read side of the store used for duplicate lookups."""

    def find_by_canonical_link(self, url: str) -> str | None: ...

    def find_recent_for_similarity(self, since: date) -> list[RecentItem]: ...


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------
def tokenize(text: str | None) -> set[str]:
    """Split text into a set of lowercase word tokens.

    Punctuation is replaced with whitespace; Hangul and word characters
    are kept.
    """
    if not text:
        return set()
    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    return {word for word in cleaned.split() if word}


def normalize_url(url: str) -> str:
    """Normalize a URL for comparison.

    Strips scheme, trailing slashes, query parameters, and fragment.
    """
    if not url:
        return ""
    try:
        parsed = urlparse(url.lower().strip())
        clean = urlunparse(("", parsed.netloc, parsed.path.rstrip("/"), "", "", ""))
        return clean.strip("/")
    except ValueError:
        return url.lower().strip().rstrip("/")


# ---------------------------------------------------------------------------
# Similarity functions
# ---------------------------------------------------------------------------
def jaccard_similarity(a: str | None, b: str | None) -> float:
    """Compute Jaccard similarity between the word sets of two texts.

    Two empty texts are identical (1.0); exactly one empty text scores 0.0.

    Returns:
        Float in [0, 1] where 1.0 means identical word sets.
    """
    set_a = tokenize(a)
    set_b = tokenize(b)

    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0

    return len(set_a & set_b) / len(set_a | set_b)


def news_similarity(
    title_a: str,
    body_a: str,
    title_b: str,
    body_b: str,
    title_weight: float = TITLE_WEIGHT,
    body_weight: float = BODY_WEIGHT,
) -> float:
    """Combined title/body similarity of two news items.

    Returns:
        Float in [0, 1].
    """
    title_sim = jaccard_similarity(title_a, title_b)
    body_sim = jaccard_similarity(body_a or "", body_b or "")

    total = title_sim * title_weight + body_sim * body_weight

    if title_sim >= TITLE_BOOST_THRESHOLD:
        total = min(1.0, total + (title_sim - TITLE_BOOST_THRESHOLD) * TITLE_BOOST_FACTOR)

    return total


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
class DedupEngine:
    """Link and similarity duplicate checks against the persisted history.

    ``check`` compares an item against the store only, and is what the
    persistence gateway calls right before each insert.  ``claim`` is the
    in-run variant used while collecting: it also compares against items
    already accepted in this run and remembers the item when it is new.
    """

    def __init__(
        self,
        store: DedupStore,
        window_days: int = DEFAULT_WINDOW_DAYS,
        threshold: float = SIMILARITY_THRESHOLD,
    ) -> None:
        self._store = store
        self.window_days = window_days
        self.threshold = threshold
        self._history: list[RecentItem] = []
        self._window_start: date | None = None
        self._run_links: dict[str, NormalizedItem] = {}
        self._run_items: list[NormalizedItem] = []
        self._lock = asyncio.Lock()

    async def load_window(self, reference_date: date) -> int:
        """Snapshot the items published in the trailing window.

        Returns:
            Number of history rows loaded.
        """
        since = reference_date - timedelta(days=self.window_days)
        try:
            rows = await asyncio.to_thread(self._store.find_recent_for_similarity, since)
        except Exception as exc:
            logger.warning("Dedup: failed to load history since %s: %s", since, exc)
            rows = []
        self._window_start = since
        self._history = [row for row in rows if row.published_date >= since]
        logger.info(
            "Dedup: %d items in the %d-day window since %s",
            len(self._history), self.window_days, since,
        )
        return len(self._history)

    async def _check_link(self, link: str | None) -> DedupDecision | None:
        if not is_valid_absolute_url(link):
            return None
        try:
            existing = await asyncio.to_thread(self._store.find_by_canonical_link, link)
        except Exception as exc:
            logger.warning("Dedup: link lookup failed for %.80s: %s", link, exc)
            return None
        if existing:
            return DedupDecision(True, matched_id=str(existing), similarity=1.0, reason="link")
        return None

    def _check_similarity(self, item: NormalizedItem) -> DedupDecision | None:
        for row in self._history:
            if self._window_start is not None and row.published_date < self._window_start:
                continue
            similarity = news_similarity(item.title, item.body, row.title, row.body)
            if similarity >= self.threshold:
                return DedupDecision(True, matched_id=row.id, similarity=similarity, reason="similarity")
        return None

    async def check(self, item: NormalizedItem) -> DedupDecision:
        """Check *item* against the persisted history."""
        decision = await self._check_link(item.canonical_link)
        if decision is None:
            decision = self._check_similarity(item)
        if decision is not None:
            logger.debug(
                "Dedup (%s): '%.60s' matches %s (similarity=%.2f)",
                decision.reason, item.title, decision.matched_id, decision.similarity or 0.0,
            )
            return decision
        return DedupDecision(False)

    def _check_run(self, item: NormalizedItem) -> DedupDecision | None:
        if is_valid_absolute_url(item.canonical_link):
            key = normalize_url(item.canonical_link)
            if key in self._run_links:
                return DedupDecision(True, similarity=1.0, reason="link")
        for accepted in self._run_items:
            similarity = news_similarity(item.title, item.body, accepted.title, accepted.body)
            if similarity >= self.threshold:
                return DedupDecision(True, similarity=similarity, reason="similarity")
        return None

    def _remember(self, item: NormalizedItem) -> None:
        if is_valid_absolute_url(item.canonical_link):
            self._run_links[normalize_url(item.canonical_link)] = item
        self._run_items.append(item)

    async def claim(self, item: NormalizedItem) -> DedupDecision:
        """Check *item* against this run and the history; remember it if new."""
        async with self._lock:
            decision = self._check_run(item)
            if decision is None:
                decision = await self.check(item)
            elif decision.is_duplicate:
                logger.debug("Dedup (same-run, %s): '%.60s'", decision.reason, item.title)
            if not decision.is_duplicate:
                self._remember(item)
            return decision
