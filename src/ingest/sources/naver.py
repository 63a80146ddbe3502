"""Naver news search adapter (Korean news and Korean coverage of Thailand)."""

from __future__ import annotations

import logging
import os
from datetime import date

from ingest.dates import REFERENCE_TZ, parse_published_date
from ingest.news_types import Candidate, NewsCategory
from ingest.sources.base import MIN_BODY_CHARS, SourceAdapter, source_media_from_url, strip_html

logger = logging.getLogger(__name__)

API_URL = "https://openapi.naver.com/v1/search/news.json"

QUERIES = {
    NewsCategory.KOREAN: "한국",
    NewsCategory.RELATED: "태국",
}


class NaverNewsSource(SourceAdapter):
    name = "naver"
    categories = (NewsCategory.KOREAN, NewsCategory.RELATED)

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        timeout: int = 15,
        tz_name: str = REFERENCE_TZ,
    ) -> None:
        super().__init__(timeout)
        self.client_id = client_id if client_id is not None else os.environ.get("NAVER_CLIENT_ID", "")
        self.client_secret = (
            client_secret if client_secret is not None else os.environ.get("NAVER_SECRET", "")
        )
        self.tz_name = tz_name

    def fetch(self, day: date, category: NewsCategory, limit: int) -> list[Candidate]:
        """Fetch up to *limit* articles published on *day* (KST).

        Items with a description under 100 characters are dropped.
        """
        if category not in QUERIES:
            return []
        if not self.client_id or not self.client_secret:
            logger.warning("Naver API credentials not set; skipping %s", category.value)
            return []

        data = self._get_json(
            API_URL,
            params={"query": QUERIES[category], "display": 100, "start": 1, "sort": "date"},
            headers={
                "X-Naver-Client-Id": self.client_id,
                "X-Naver-Client-Secret": self.client_secret,
            },
        )
        items = data.get("items") or []
        logger.info("Naver returned %d items for %s (total=%s)", len(items), category.value, data.get("total"))

        candidates: list[Candidate] = []
        for item in items:
            if parse_published_date(item.get("pubDate"), self.tz_name) != day:
                continue

            title = strip_html(item.get("title"))
            body = strip_html(item.get("description"))
            if not title or len(body) < MIN_BODY_CHARS:
                continue

            link = item.get("originallink") or item.get("link")
            candidates.append(
                Candidate(
                    title=title,
                    body=body,
                    category=category.value,
                    source_media=source_media_from_url(link),
                    source_country="한국",
                    published_date=day.isoformat(),
                    canonical_link=link,
                    source_api=self.name,
                )
            )
            if len(candidates) >= limit:
                break

        logger.info("Naver %s: %d/%d collected for %s", category.value, len(candidates), limit, day)
        return candidates
