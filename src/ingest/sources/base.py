"""Shared plumbing for source adapters.

Every adapter implements ``fetch(date, category, limit)`` and returns raw
Candidates.  HTTP 429 is raised as ``SourceRateLimitError`` so the
orchestrator can back off that one source; every other failure becomes a
plain ``SourceError``.
"""

from __future__ import annotations

import html
import logging
import re
from datetime import date
from typing import Any
from urllib.parse import urlparse

import requests

from ingest.errors import SourceError, SourceRateLimitError
from ingest.news_types import Candidate, NewsCategory

logger = logging.getLogger(__name__)

MIN_BODY_CHARS = 100

_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(text: str | None) -> str:
    """Remove HTML tags and decode entities."""
    if not text:
        return ""
    return html.unescape(_TAG_RE.sub("", text)).replace("\xa0", " ").strip()


def source_media_from_url(url: str | None) -> str:
    """Derive an outlet name from an article URL.

    ``www.`` is dropped; hosts with more than two labels keep only the
    first one (``news.yonhapnews.co.kr`` → ``news``, ``bbc.com`` →
    ``bbc.com``).
    """
    if not url:
        return "Unknown"
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return "Unknown"
    host = re.sub(r"^www\.", "", host)
    if not host:
        return "Unknown"
    parts = host.split(".")
    return parts[0] if len(parts) > 2 else host


class SourceAdapter:
    """Base class for source adapters.

    Subclasses set ``name`` and ``categories`` and implement ``fetch``.
    """

    name = "base"
    categories: tuple[NewsCategory, ...] = ()

    def __init__(self, timeout: int = 15) -> None:
        self.timeout = timeout

    def serves(self, category: NewsCategory) -> bool:
        return category in self.categories

    def fetch(self, day: date, category: NewsCategory, limit: int) -> list[Candidate]:
        raise NotImplementedError

    def _get_json(
        self,
        url: str,
        params: dict[str, Any],
        headers: dict[str, str],
    ) -> dict[str, Any]:
        """GET *url* and decode the JSON body.

        Raises:
            SourceRateLimitError: The provider answered 429.
            SourceError: Network failure, non-2xx status or invalid JSON.
        """
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SourceError(f"{self.name} request failed: {exc}", source=self.name) from exc

        if resp.status_code == 429:
            raise SourceRateLimitError(
                f"{self.name} rate limit reached", source=self.name, status_code=429
            )
        if resp.status_code >= 400:
            raise SourceError(
                f"{self.name} returned HTTP {resp.status_code}",
                source=self.name,
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise SourceError(f"{self.name} returned invalid JSON: {exc}", source=self.name) from exc

    def __repr__(self) -> str:
        return f"{type(self).__name__}(categories={[c.value for c in self.categories]})"
