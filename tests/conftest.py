"""Shared fixtures for news-ingest tests."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any

import pytest
import yaml

from ingest.errors import TranslationError
from ingest.news_types import Candidate, NewsCategory, NormalizedItem
from ingest.retry import RetryPolicy
from ingest.sources.base import SourceAdapter
from ingest.store import JsonNewsStore
from ingest.translate import Translator

REFERENCE_DATE = date(2025, 3, 14)

# Hand-picked syllable pairs; appended to every body word so that bodies
# built from different keys share no tokens.
KEYS = [
    "가온", "나래", "다온", "라온", "마루", "바다", "사랑", "아라", "자람", "차오",
    "카라", "타래", "파랑", "하늘", "강물", "노을", "들꽃", "마을", "별빛", "새벽",
    "솔잎", "숲길", "은하", "이슬", "잎새", "초원", "햇살", "호수", "구름", "꽃길",
    "나무", "달빛", "물결", "바람", "보라", "산들", "여울", "윤슬", "한결", "미르",
]

_SENTENCES = [
    ["정부", "관계자", "교통", "정책", "발표"],
    ["주민", "출퇴근", "시간", "단축", "목표"],
    ["시민", "단체", "계획", "긍정", "반응"],
    ["전문가", "추가", "재원", "확보", "관건"],
    ["당국", "내년", "세부", "시행안", "마련"],
    ["공청회", "다음달", "시청", "개최", "일정"],
]


def make_title(key: str) -> str:
    return f"{key}시 {key}구 교통 정책 발표 소식"


def make_body(key: str) -> str:
    """A plausible Korean body whose tokens are unique to *key*."""
    return " ".join(
        " ".join(f"{word}{key}" for word in words) + "."
        for words in _SENTENCES
    )


def make_candidate(
    key: str,
    category: NewsCategory = NewsCategory.KOREAN,
    published_date: str | None = REFERENCE_DATE.isoformat(),
    link: str | None = None,
    **overrides: Any,
) -> Candidate:
    """A candidate that passes validation and the hallucination filter."""
    fields: dict[str, Any] = {
        "title": make_title(key),
        "body": make_body(key),
        "category": category.value,
        "source_media": "연합뉴스",
        "source_country": category.default_country,
        "published_date": published_date,
        "canonical_link": link or f"https://news.example.co.kr/article/{key}",
        "source_api": "fake",
    }
    fields.update(overrides)
    return Candidate(**fields)


def make_fabricated(n: int, category: NewsCategory = NewsCategory.KOREAN) -> Candidate:
    """A candidate the hallucination filter rejects."""
    return Candidate(
        title=f"테스트 {n}",
        body="AI가 생성된 샘플 기사입니다.",
        category=category.value,
        source_media="",
        published_date=REFERENCE_DATE.isoformat(),
        canonical_link=f"https://fake.example.com/{n}",
    )


def make_item(key: str, category: NewsCategory = NewsCategory.KOREAN, **overrides: Any) -> NormalizedItem:
    fields: dict[str, Any] = {
        "title": make_title(key),
        "body": make_body(key),
        "category": category,
        "source_media": "연합뉴스",
        "source_country": category.default_country,
        "published_date": REFERENCE_DATE,
        "canonical_link": f"https://news.example.co.kr/article/{key}",
    }
    fields.update(overrides)
    return NormalizedItem(**fields)


class FakeSource(SourceAdapter):
    """Source returning scripted batches, one per fetch call."""

    def __init__(
        self,
        name: str,
        categories: tuple[NewsCategory, ...],
        batches: list[list[Candidate]] | None = None,
        error: Exception | None = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.categories = categories
        self.batches = list(batches or [])
        self.error = error
        self.calls: list[tuple[NewsCategory, int]] = []

    def fetch(self, day: date, category: NewsCategory, limit: int) -> list[Candidate]:
        self.calls.append((category, limit))
        if self.error is not None:
            raise self.error
        if not self.batches:
            return []
        return self.batches.pop(0)[:limit]


class FakeProvider:
    """Translation provider with scripted answers or errors."""

    name = "fake"

    def __init__(self, responses: list[Any] | None = None, default: str | None = None) -> None:
        self.responses = list(responses or [])
        self.default = default
        self.calls: list[str] = []

    def translate(self, text: str) -> str:
        self.calls.append(text)
        if self.responses:
            response = self.responses.pop(0)
        elif self.default is not None:
            response = self.default
        else:
            response = text
        if isinstance(response, TranslationError):
            raise response
        return response


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the config directory."""
    return project_root / "config"


@pytest.fixture
def topics_dict(config_dir: Path) -> dict[str, list[str]]:
    """Load topics.yaml."""
    path = config_dir / "keyword_dicts" / "topics.yaml"
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture
def reference_date() -> date:
    return REFERENCE_DATE


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    """Three retries without backoff delay."""
    return RetryPolicy(max_retries=3, base_delay=0.0, max_delay=0.0)


@pytest.fixture
def store(tmp_path: Path) -> JsonNewsStore:
    return JsonNewsStore(tmp_path / "news.json")


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider(default="번역된 한국어 문장입니다")


@pytest.fixture
def translator(fake_provider: FakeProvider, no_wait_policy: RetryPolicy) -> Translator:
    return Translator(fake_provider, no_wait_policy)
