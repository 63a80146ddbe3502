"""Brave web search adapter, one query per category."""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any
from urllib.parse import urlparse

from ingest.classifiers.topic import classify_topic
from ingest.news_types import Candidate, NewsCategory
from ingest.sources.base import SourceAdapter, strip_html

logger = logging.getLogger(__name__)

API_URL = "https://api.search.brave.com/res/v1/web/search"
MAX_COUNT = 20

# Descriptions up to this length get a pointer to the original article.
SHORT_BODY_CHARS = 300


def query_for_category(category: NewsCategory, day: date) -> str:
    day_str = day.isoformat()
    if category is NewsCategory.THAI:
        return f"태국 뉴스 {day_str} site:th OR site:thailand"
    if category is NewsCategory.RELATED:
        return f"한국 태국 관련 뉴스 {day_str} site:kr OR site:co.kr"
    return f"한국 뉴스 {day_str} site:kr OR site:co.kr"


class BraveSearchSource(SourceAdapter):
    name = "brave"
    categories = (NewsCategory.THAI, NewsCategory.RELATED, NewsCategory.KOREAN)

    def __init__(
        self,
        api_key: str | None = None,
        timeout: int = 15,
        topic_keywords: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(timeout)
        self.api_key = api_key if api_key is not None else os.environ.get("BRAVE_SEARCH_API_KEY", "")
        self.topic_keywords = topic_keywords

    def _to_candidate(self, result: dict[str, Any], category: NewsCategory, day: date) -> Candidate:
        url = result.get("url") or ""
        title = strip_html(result.get("title"))
        description = strip_html(result.get("description"))
        body = description or title
        if len(body) <= SHORT_BODY_CHARS:
            body = f"{body}\n\n자세한 내용은 원문을 참고하세요: {url}"

        media = (result.get("meta_url") or {}).get("hostname") or urlparse(url).hostname or "알 수 없음"
        topic = classify_topic(title, description, self.topic_keywords)

        return Candidate(
            title=title,
            body=body,
            category=category.value,
            source_media=media,
            source_country=category.default_country,
            published_date=day.isoformat(),
            topic_category=topic.value if topic else None,
            canonical_link=url or None,
            source_api=self.name,
        )

    def fetch(self, day: date, category: NewsCategory, limit: int) -> list[Candidate]:
        if not self.api_key:
            logger.warning("BRAVE_SEARCH_API_KEY not set; skipping %s", category.value)
            return []

        query = query_for_category(category, day)
        logger.debug("Brave search for %s: %s", category.value, query)
        data = self._get_json(
            API_URL,
            params={
                "q": query,
                "count": min(MAX_COUNT, max(1, limit * 2)),
                "search_lang": "ko",
                "country": "KR",
                "safesearch": "moderate",
            },
            headers={"X-Subscription-Token": self.api_key, "Accept": "application/json"},
        )
        results = (data.get("web") or {}).get("results") or (data.get("news") or {}).get("results") or []

        candidates = [
            self._to_candidate(r, category, day)
            for r in results[:limit]
            if r.get("title")
        ]
        logger.info("Brave %s: %d/%d collected", category.value, len(candidates), limit)
        return candidates
