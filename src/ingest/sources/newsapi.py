"""NewsAPI.org adapter for Thai news."""

from __future__ import annotations

import logging
import os
from datetime import date

from ingest.dates import REFERENCE_TZ, parse_published_date
from ingest.errors import SourceError
from ingest.news_types import Candidate, NewsCategory
from ingest.sources.base import MIN_BODY_CHARS, SourceAdapter

logger = logging.getLogger(__name__)

API_URL = "https://newsapi.org/v2/everything"


class NewsApiSource(SourceAdapter):
    name = "newsapi"
    categories = (NewsCategory.THAI,)

    def __init__(
        self,
        api_key: str | None = None,
        timeout: int = 15,
        tz_name: str = REFERENCE_TZ,
        query: str = "Thailand OR ไทย",
        language: str = "th",
    ) -> None:
        super().__init__(timeout)
        self.api_key = api_key if api_key is not None else os.environ.get("NEWSAPI_KEY", "")
        self.tz_name = tz_name
        self.query = query
        self.language = language

    def fetch(self, day: date, category: NewsCategory, limit: int) -> list[Candidate]:
        if category is not NewsCategory.THAI:
            return []
        if not self.api_key:
            logger.warning("NEWSAPI_KEY not set; skipping Thai news")
            return []

        data = self._get_json(
            API_URL,
            params={
                "q": self.query,
                "language": self.language,
                "from": f"{day.isoformat()}T00:00:00Z",
                "to": f"{day.isoformat()}T23:59:59Z",
                "sortBy": "publishedAt",
                "pageSize": 100,
                "page": 1,
            },
            headers={"X-Api-Key": self.api_key},
        )
        if data.get("status") != "ok":
            raise SourceError(f"NewsAPI status {data.get('status')!r}: {data.get('message', '')}", source=self.name)

        articles = data.get("articles") or []
        logger.info("NewsAPI returned %d articles (totalResults=%s)", len(articles), data.get("totalResults"))

        candidates: list[Candidate] = []
        for article in articles:
            if parse_published_date(article.get("publishedAt"), self.tz_name) != day:
                continue

            title = (article.get("title") or "").strip()
            body = (article.get("description") or article.get("content") or "").strip()
            if not title or len(body) < MIN_BODY_CHARS:
                continue

            candidates.append(
                Candidate(
                    title=title,
                    body=body,
                    category=category.value,
                    source_media=(article.get("source") or {}).get("name") or "Unknown",
                    source_country="태국",
                    published_date=day.isoformat(),
                    canonical_link=article.get("url"),
                    source_api=self.name,
                )
            )
            if len(candidates) >= limit:
                break

        logger.info("NewsAPI: %d/%d collected for %s", len(candidates), limit, day)
        return candidates
