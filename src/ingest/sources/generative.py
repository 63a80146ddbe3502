"""Generative news source backed by the local LLM.

The model is asked for a JSON list of the day's news in one category.
Output from this source is the main reason the hallucination filter
exists; it is disabled outside prod by default.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Any

from ingest.errors import SourceError, SourceRateLimitError, TranslationError, TranslationQuotaError
from ingest.llm import OllamaClient
from ingest.news_types import Candidate, NewsCategory
from ingest.sources.base import SourceAdapter

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

_CATEGORY_DESCRIPTIONS = {
    NewsCategory.THAI: "태국에서 발생한 주요 뉴스 (한국어 번역 포함)",
    NewsCategory.RELATED: "한국에서 태국과 관련된 뉴스",
    NewsCategory.KOREAN: "한국의 주요 뉴스",
}


def _build_prompt(day: date, category: NewsCategory, limit: int) -> str:
    return (
        f"{day.isoformat()}의 {_CATEGORY_DESCRIPTIONS[category]}를 {limit}개 수집하여 "
        "JSON 포맷으로 출력해주세요.\n\n"
        "다음 JSON 형식을 정확히 따라주세요:\n"
        "{\n"
        '  "news": [\n'
        "    {\n"
        '      "title": "뉴스 제목",\n'
        '      "content": "뉴스 본문 내용",\n'
        '      "content_translated": "번역된 내용 (태국 뉴스인 경우)",\n'
        '      "source_country": "태국" 또는 "한국",\n'
        '      "source_media": "언론사 이름",\n'
        f'      "category": "{category.value}",\n'
        '      "original_link": "원본 뉴스 링크 URL",\n'
        f'      "published_date": "{day.isoformat()}"\n'
        "    }\n"
        "  ]\n"
        "}\n\n"
        "original_link는 http:// 또는 https://로 시작하는 실제 기사 URL이어야 하며, "
        "없으면 빈 문자열로 설정하세요."
    )


def parse_news_json(text: str) -> list[dict[str, Any]]:
    """Extract the ``news`` list from model output, code fences allowed.

    Raises:
        ValueError: The output is not JSON or has no ``news`` list.
    """
    json_text = text.strip()
    if "```" in json_text:
        match = _CODE_FENCE_RE.search(json_text)
        if match:
            json_text = match.group(1).strip()

    data = json.loads(json_text)
    news = data.get("news") if isinstance(data, dict) else None
    if not isinstance(news, list):
        raise ValueError("response has no 'news' list")
    return [entry for entry in news if isinstance(entry, dict)]


class GenerativeSource(SourceAdapter):
    name = "generative"
    categories = (NewsCategory.THAI, NewsCategory.RELATED, NewsCategory.KOREAN)

    def __init__(self, client: OllamaClient) -> None:
        super().__init__(client.timeout)
        self.client = client

    def fetch(self, day: date, category: NewsCategory, limit: int) -> list[Candidate]:
        try:
            text = self.client.generate(_build_prompt(day, category, limit))
        except TranslationQuotaError as exc:
            raise SourceRateLimitError(str(exc), source=self.name, status_code=429) from exc
        except TranslationError as exc:
            raise SourceError(f"generative source unavailable: {exc}", source=self.name) from exc

        try:
            entries = parse_news_json(text)
        except ValueError as exc:
            raise SourceError(f"generative source returned unusable JSON: {exc}", source=self.name) from exc

        candidates = [
            Candidate(
                title=str(entry.get("title") or ""),
                body=str(entry.get("content") or ""),
                category=category.value,
                source_media=str(entry.get("source_media") or ""),
                source_country=str(entry.get("source_country") or ""),
                published_date=entry.get("published_date") or None,
                translated_body=entry.get("content_translated") or None,
                canonical_link=entry.get("original_link") or None,
                source_api=self.name,
            )
            for entry in entries[:limit]
        ]
        logger.info("Generative %s: %d/%d candidates", category.value, len(candidates), limit)
        return candidates
