"""Candidate validation and normalization.

Turns a loosely-typed Candidate into a NormalizedItem pinned to the run's
reference date, or rejects it.  Rejection is silent from the caller's point
of view: the reason is logged and None is returned.
"""

from __future__ import annotations

import logging
from datetime import date
from urllib.parse import urlparse

from ingest.dates import REFERENCE_TZ, parse_published_date
from ingest.news_types import Candidate, NewsCategory, NormalizedItem, TopicCategory

logger = logging.getLogger(__name__)


def parse_category(value: str | None) -> NewsCategory | None:
    """Map a category label onto the closed set; None when unknown."""
    if not value:
        return None
    try:
        return NewsCategory(value.strip())
    except ValueError:
        return None


def parse_topic(value: str | None) -> TopicCategory | None:
    """Map a topic label onto the closed set; None when unknown."""
    if not value:
        return None
    try:
        return TopicCategory(value.strip())
    except ValueError:
        return None


def is_valid_absolute_url(url: str | None) -> bool:
    """True for a well-formed absolute http(s) URL with a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False
    host = parsed.hostname or ""
    return bool(host) and " " not in url.strip() and "." in host


def normalize_link(url: str | None) -> str | None:
    """Normalize a source-provided article link.

    Blank links become None, a missing scheme gets ``https://``, and
    anything that still is not a valid absolute URL becomes None.
    """
    if not url or not url.strip() or url.strip() == "#":
        return None
    link = url.strip()
    if not link.startswith(("http://", "https://")):
        link = f"https://{link}"
    if not is_valid_absolute_url(link):
        logger.debug("Invalid article link dropped: %.80s", url)
        return None
    return link


def normalize_candidate(
    candidate: Candidate,
    reference_date: date,
    tz_name: str = REFERENCE_TZ,
) -> NormalizedItem | None:
    """Validate *candidate* and pin it to *reference_date*.

    Rejects candidates with a blank title or body, a category outside the
    closed set, an unparseable published date, or a published date on any
    day other than *reference_date* (past and future alike).  A missing
    published date defaults to *reference_date*.

    Returns:
        The normalized item, or None when rejected.
    """
    title = (candidate.title or "").strip()
    body = (candidate.body or "").strip()

    if not title or not body:
        logger.info("Rejected candidate (empty title or body): %.50s", title or body)
        return None

    category = parse_category(candidate.category)
    if category is None:
        logger.info("Rejected candidate (unknown category %r): %.50s", candidate.category, title)
        return None

    if candidate.published_date:
        published = parse_published_date(candidate.published_date, tz_name)
        if published is None:
            logger.info(
                "Rejected candidate (unparseable date %r): %.50s",
                candidate.published_date, title,
            )
            return None
    else:
        published = reference_date

    if published != reference_date:
        logger.info(
            "Rejected candidate (%s date %s, expected %s): %.50s",
            "past" if published < reference_date else "future",
            published, reference_date, title,
        )
        return None

    translated = candidate.translated_body.strip() if candidate.translated_body else None

    return NormalizedItem(
        title=title,
        body=body,
        category=category,
        source_media=(candidate.source_media or "").strip(),
        source_country=(candidate.source_country or "").strip() or category.default_country,
        published_date=reference_date,
        translated_body=translated or None,
        topic_category=parse_topic(candidate.topic_category),
        canonical_link=normalize_link(candidate.canonical_link),
        source_api=candidate.source_api,
    )
