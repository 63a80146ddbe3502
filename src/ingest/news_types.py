"""Structured type definitions for news items at each pipeline stage.

Items flow through the pipeline as:
Candidate (source adapter) → NormalizedItem (validator) → persisted row.
Derived results (scores, decisions, quotas) are plain dataclasses that are
never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class NewsCategory(str, Enum):
    """Top-level news bucket. Values are the stored category labels."""

    THAI = "태국뉴스"
    RELATED = "관련뉴스"
    KOREAN = "한국뉴스"

    @property
    def default_country(self) -> str:
        return "태국" if self is NewsCategory.THAI else "한국"


class TopicCategory(str, Enum):
    """Secondary subject classification."""

    SCIENCE = "과학"
    POLITICS = "정치"
    ECONOMY = "경제"
    SPORTS = "스포츠"
    TECHNOLOGY = "기술"
    HEALTH = "건강"
    ENVIRONMENT = "환경"
    CULTURE = "문화"
    INTERNATIONAL = "국제"
    SOCIETY = "사회"


@dataclass
class Candidate:
    """Raw article record as returned by a source adapter.

    Fields are loosely typed strings; nothing is trusted until the
    validator has turned the candidate into a NormalizedItem.
    """

    title: str
    body: str
    category: str
    source_media: str = ""
    source_country: str = ""
    published_date: str | None = None
    translated_body: str | None = None
    topic_category: str | None = None
    canonical_link: str | None = None
    source_api: str | None = None


@dataclass
class NormalizedItem:
    """Candidate after validation; every downstream field is present."""

    title: str
    body: str
    category: NewsCategory
    source_media: str
    source_country: str
    published_date: date
    translated_body: str | None = None
    topic_category: TopicCategory | None = None
    canonical_link: str | None = None
    source_api: str | None = None
    translation_failed: bool = False

    def to_record(self) -> dict[str, object]:
        """Serialize to the flat dict shape handed to the store."""
        return {
            "title": self.title,
            "content": self.body,
            "content_translated": self.translated_body,
            "category": self.category.value,
            "news_category": self.topic_category.value if self.topic_category else None,
            "source_media": self.source_media,
            "source_country": self.source_country,
            "published_date": self.published_date.isoformat(),
            "original_link": self.canonical_link,
            "source_api": self.source_api,
            "translation_failed": self.translation_failed,
        }

    @classmethod
    def from_record(cls, record: dict[str, object]) -> NormalizedItem:
        """Rebuild an item from a stored record (inverse of ``to_record``)."""
        topic = record.get("news_category")
        return cls(
            title=str(record.get("title") or ""),
            body=str(record.get("content") or ""),
            category=NewsCategory(record["category"]),
            source_media=str(record.get("source_media") or ""),
            source_country=str(record.get("source_country") or ""),
            published_date=date.fromisoformat(str(record["published_date"])),
            translated_body=record.get("content_translated") or None,
            topic_category=TopicCategory(topic) if topic else None,
            canonical_link=record.get("original_link") or None,
            source_api=record.get("source_api") or None,
            translation_failed=bool(record.get("translation_failed")),
        )


@dataclass
class HallucinationScore:
    """Heuristic fabrication score. ``suspicious`` iff score >= threshold."""

    score: int
    suspicious: bool
    reasons: list[str] = field(default_factory=list)


@dataclass
class TranslationOutcome:
    """Result of a translation attempt.

    ``failed`` means the text that came back is still the original text
    after the retry budget was spent.  ``quota_exhausted`` marks the
    failures caused by a spent provider quota.
    """

    text: str
    failed: bool = False
    quota_exhausted: bool = False


@dataclass
class DedupDecision:
    """Outcome of a duplicate check.

    *reason* is ``"link"``, ``"similarity"`` or ``""`` (not a duplicate).
    """

    is_duplicate: bool
    matched_id: str | None = None
    similarity: float | None = None
    reason: str = ""


@dataclass
class RecentItem:
    """A persisted item inside the fuzzy-dedup history window."""

    id: str
    title: str
    body: str
    published_date: date


@dataclass
class CategoryQuota:
    """Per-category target and the number of accepted items so far."""

    category: NewsCategory
    target: int
    collected: int = 0

    @property
    def deficit(self) -> int:
        return max(0, self.target - self.collected)

    @property
    def fulfilled(self) -> bool:
        return self.collected >= self.target


@dataclass
class RunResult:
    """Outcome of one collection run, before persistence."""

    reference_date: date
    accepted: list[NormalizedItem] = field(default_factory=list)
    quotas: dict[NewsCategory, CategoryQuota] = field(default_factory=dict)
    translation_failures: int = 0
    rejected_invalid: int = 0
    rejected_hallucination: int = 0
    rejected_duplicate: int = 0
    backfill_rounds: int = 0
    deadline_hit: bool = False

    @property
    def per_category_counts(self) -> dict[str, dict[str, int]]:
        return {
            category.value: {"collected": quota.collected, "target": quota.target}
            for category, quota in self.quotas.items()
        }

    @property
    def shortfalls(self) -> dict[NewsCategory, int]:
        return {c: q.deficit for c, q in self.quotas.items() if q.deficit > 0}


@dataclass
class BatchResult:
    """Outcome of a batched insert."""

    success: int = 0
    failed: int = 0
    skipped: int = 0
    persisted_ids: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success + self.failed + self.skipped
