"""Tests for the source adapters."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import REFERENCE_DATE
from ingest.config import load_config
from ingest.errors import (
    SourceError,
    SourceRateLimitError,
    TransientTranslationError,
    TranslationQuotaError,
)
from ingest.news_types import NewsCategory
from ingest.sources import build_sources
from ingest.sources.base import source_media_from_url, strip_html
from ingest.sources.brave import BraveSearchSource, query_for_category
from ingest.sources.generative import GenerativeSource, parse_news_json
from ingest.sources.naver import NaverNewsSource
from ingest.sources.newsapi import NewsApiSource

LONG_KO = "방콕 당국은 도심 교통 혼잡을 줄이기 위해 지하철 노선 두 개를 연장하고 버스 전용차로를 확대하는 계획을 발표했다. " * 2
LONG_EN = "Thai officials unveiled a plan to extend two metro lines and widen bus lanes across central Bangkok this year. " * 2


def _response(status: int = 200, payload: dict | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload or {}
    return resp


class TestHelpers:
    def test_strip_html(self) -> None:
        assert strip_html("<b>태국</b> &amp; 한국&nbsp;") == "태국 & 한국"

    def test_strip_html_empty(self) -> None:
        assert strip_html(None) == ""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://www.bbc.com/news/1", "bbc.com"),
            ("https://news.yonhapnews.co.kr/a", "news"),
            ("", "Unknown"),
        ],
    )
    def test_source_media_from_url(self, url: str, expected: str) -> None:
        assert source_media_from_url(url) == expected


class TestNaverNewsSource:
    def _item(self, pub_date: str, description: str = LONG_KO) -> dict:
        return {
            "title": "<b>태국</b> 교통 계획",
            "description": description,
            "originallink": "https://www.yna.co.kr/view/1",
            "link": "https://n.news.naver.com/1",
            "pubDate": pub_date,
        }

    @patch("ingest.sources.base.requests.get")
    def test_filters_by_day_and_length(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(payload={"items": [
            self._item("Fri, 14 Mar 2025 09:00:00 +0900"),
            self._item("Thu, 13 Mar 2025 09:00:00 +0900"),
            self._item("Fri, 14 Mar 2025 10:00:00 +0900", description="짧은 설명"),
        ]})
        source = NaverNewsSource(client_id="id", client_secret="secret")

        candidates = source.fetch(REFERENCE_DATE, NewsCategory.RELATED, 10)

        assert len(candidates) == 1
        assert candidates[0].title == "태국 교통 계획"
        assert candidates[0].canonical_link == "https://www.yna.co.kr/view/1"
        assert candidates[0].category == "관련뉴스"
        assert mock_get.call_args.kwargs["params"]["query"] == "태국"
        assert mock_get.call_args.kwargs["headers"]["X-Naver-Client-Id"] == "id"

    @patch("ingest.sources.base.requests.get")
    def test_limit_respected(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(payload={"items": [
            self._item("Fri, 14 Mar 2025 09:00:00 +0900") for _ in range(5)
        ]})
        source = NaverNewsSource(client_id="id", client_secret="secret")
        assert len(source.fetch(REFERENCE_DATE, NewsCategory.KOREAN, 2)) == 2

    @patch("ingest.sources.base.requests.get")
    def test_missing_credentials_skips(self, mock_get: MagicMock) -> None:
        source = NaverNewsSource(client_id="", client_secret="")
        assert source.fetch(REFERENCE_DATE, NewsCategory.KOREAN, 10) == []
        mock_get.assert_not_called()

    def test_does_not_serve_thai(self) -> None:
        source = NaverNewsSource(client_id="id", client_secret="secret")
        assert not source.serves(NewsCategory.THAI)
        assert source.fetch(REFERENCE_DATE, NewsCategory.THAI, 10) == []

    @patch("ingest.sources.base.requests.get")
    def test_rate_limit(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(status=429)
        source = NaverNewsSource(client_id="id", client_secret="secret")
        with pytest.raises(SourceRateLimitError):
            source.fetch(REFERENCE_DATE, NewsCategory.KOREAN, 10)

    @patch("ingest.sources.base.requests.get")
    def test_server_error(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(status=500)
        source = NaverNewsSource(client_id="id", client_secret="secret")
        with pytest.raises(SourceError) as excinfo:
            source.fetch(REFERENCE_DATE, NewsCategory.KOREAN, 10)
        assert not isinstance(excinfo.value, SourceRateLimitError)
        assert excinfo.value.status_code == 500

    @patch("ingest.sources.base.requests.get")
    def test_network_error(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = requests.ConnectionError("refused")
        source = NaverNewsSource(client_id="id", client_secret="secret")
        with pytest.raises(SourceError):
            source.fetch(REFERENCE_DATE, NewsCategory.KOREAN, 10)


class TestNewsApiSource:
    @patch("ingest.sources.base.requests.get")
    def test_collects_thai_articles(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(payload={
            "status": "ok",
            "totalResults": 2,
            "articles": [
                {
                    "title": "Bangkok metro expansion",
                    "description": LONG_EN,
                    "url": "https://www.bangkokpost.com/1",
                    "publishedAt": "2025-03-14T02:00:00Z",
                    "source": {"name": "Bangkok Post"},
                },
                {
                    "title": "Old story",
                    "description": LONG_EN,
                    "url": "https://www.bangkokpost.com/2",
                    "publishedAt": "2025-03-12T02:00:00Z",
                    "source": {"name": "Bangkok Post"},
                },
            ],
        })
        candidates = NewsApiSource(api_key="key").fetch(REFERENCE_DATE, NewsCategory.THAI, 10)

        assert len(candidates) == 1
        assert candidates[0].source_media == "Bangkok Post"
        assert candidates[0].source_country == "태국"
        assert candidates[0].published_date == "2025-03-14"

    @patch("ingest.sources.base.requests.get")
    def test_error_status_raises(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(payload={"status": "error", "message": "apiKeyInvalid"})
        with pytest.raises(SourceError, match="apiKeyInvalid"):
            NewsApiSource(api_key="key").fetch(REFERENCE_DATE, NewsCategory.THAI, 10)

    def test_only_thai(self) -> None:
        assert NewsApiSource(api_key="key").fetch(REFERENCE_DATE, NewsCategory.KOREAN, 10) == []


class TestBraveSearchSource:
    def test_query_per_category(self) -> None:
        assert "site:th" in query_for_category(NewsCategory.THAI, REFERENCE_DATE)
        assert "2025-03-14" in query_for_category(NewsCategory.KOREAN, REFERENCE_DATE)

    @patch("ingest.sources.base.requests.get")
    def test_short_description_padded_with_link(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(payload={"web": {"results": [
            {
                "title": "국회 선거법 개정",
                "description": "국회가 선거법 개정안을 통과시켰다.",
                "url": "https://www.hani.co.kr/a/1",
                "meta_url": {"hostname": "www.hani.co.kr"},
            },
            {"title": "", "description": "no title", "url": "https://x.kr/2"},
        ]}})
        source = BraveSearchSource(api_key="key")

        candidates = source.fetch(REFERENCE_DATE, NewsCategory.KOREAN, 5)

        assert len(candidates) == 1
        assert candidates[0].body.endswith("https://www.hani.co.kr/a/1")
        assert candidates[0].topic_category == "정치"
        assert candidates[0].source_media == "www.hani.co.kr"
        assert mock_get.call_args.kwargs["params"]["count"] == 10

    @patch("ingest.sources.base.requests.get")
    def test_count_capped(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(payload={})
        BraveSearchSource(api_key="key").fetch(REFERENCE_DATE, NewsCategory.THAI, 15)
        assert mock_get.call_args.kwargs["params"]["count"] == 20


class TestGenerativeSource:
    def _client(self, text: str | None = None, error: Exception | None = None) -> MagicMock:
        client = MagicMock()
        client.timeout = 30
        if error is not None:
            client.generate.side_effect = error
        else:
            client.generate.return_value = text
        return client

    def test_parse_fenced_json(self) -> None:
        text = '```json\n{"news": [{"title": "a"}, "junk"]}\n```'
        assert parse_news_json(text) == [{"title": "a"}]

    def test_parse_rejects_missing_list(self) -> None:
        with pytest.raises(ValueError):
            parse_news_json('{"items": []}')

    def test_category_forced(self) -> None:
        payload = {"news": [{
            "title": "제목",
            "content": LONG_KO,
            "category": "한국뉴스",
            "published_date": "2025-03-14",
            "original_link": "",
        }]}
        source = GenerativeSource(self._client(json.dumps(payload, ensure_ascii=False)))

        candidates = source.fetch(REFERENCE_DATE, NewsCategory.THAI, 5)

        assert candidates[0].category == "태국뉴스"
        assert candidates[0].canonical_link is None
        assert candidates[0].source_api == "generative"

    def test_unusable_output(self) -> None:
        source = GenerativeSource(self._client("Sorry, I cannot do that."))
        with pytest.raises(SourceError):
            source.fetch(REFERENCE_DATE, NewsCategory.KOREAN, 5)

    def test_quota_mapped_to_rate_limit(self) -> None:
        source = GenerativeSource(self._client(error=TranslationQuotaError("429")))
        with pytest.raises(SourceRateLimitError):
            source.fetch(REFERENCE_DATE, NewsCategory.KOREAN, 5)

    def test_outage_mapped_to_source_error(self) -> None:
        source = GenerativeSource(self._client(error=TransientTranslationError("down")))
        with pytest.raises(SourceError):
            source.fetch(REFERENCE_DATE, NewsCategory.KOREAN, 5)


class TestBuildSources:
    def test_dev_sources(self) -> None:
        sources = build_sources(load_config("dev"))
        assert [s.name for s in sources] == ["naver", "newsapi", "brave"]

    def test_prod_includes_generative(self) -> None:
        sources = build_sources(load_config("prod"), client=MagicMock(timeout=30))
        assert [s.name for s in sources][-1] == "generative"
