"""Keyword dictionary-based topic classification.

Checks text against each topic's keyword list (KO + EN) in priority
order and assigns the first topic with a hit.  Latin keywords match on
word boundaries; Hangul keywords match as substrings because Korean
attaches particles directly to nouns (e.g. "정부가", "선거를").
"""

from __future__ import annotations

import re
from typing import Any

from ingest.news_types import TopicCategory

# Priority order: the first topic with any keyword hit wins.
PRIORITY_ORDER = [
    TopicCategory.SCIENCE,
    TopicCategory.POLITICS,
    TopicCategory.ECONOMY,
    TopicCategory.SPORTS,
    TopicCategory.TECHNOLOGY,
    TopicCategory.HEALTH,
    TopicCategory.ENVIRONMENT,
    TopicCategory.CULTURE,
    TopicCategory.INTERNATIONAL,
    TopicCategory.SOCIETY,
]

DEFAULT_KEYWORDS: dict[str, list[str]] = {
    "과학": ["과학", "연구", "발견", "실험", "science", "research", "study", "discovery"],
    "정치": ["정치", "선거", "정책", "국회", "정부", "politics", "election", "government"],
    "경제": ["경제", "기업", "금융", "주식", "economy", "finance", "stock", "market", "business"],
    "스포츠": ["스포츠", "선수", "대회", "올림픽", "sports", "match", "player", "olympic"],
    "기술": ["기술", "디지털", "소프트웨어", "tech", "technology", "digital", "software"],
    "건강": ["건강", "의료", "질병", "병원", "health", "medical", "hospital", "disease"],
    "환경": ["환경", "기후", "생태", "climate", "environment", "carbon"],
    "문화": ["문화", "예술", "엔터테인먼트", "culture", "art", "entertainment", "movie"],
    "국제": ["국제", "외교", "해외", "international", "diplomacy", "foreign"],
    "사회": ["사회", "사건", "사고", "범죄", "society", "incident", "accident", "crime"],
}

_HANGUL_RE = re.compile(r"[가-힣]")


def _keyword_hit(text_lower: str, keyword: str) -> bool:
    """True when *keyword* occurs in the already-lowercased text."""
    kw_lower = keyword.lower().strip()
    if not kw_lower:
        return False
    if _HANGUL_RE.search(kw_lower):
        return kw_lower in text_lower
    return re.search(rf"(?<![a-z0-9]){re.escape(kw_lower)}(?![a-z0-9])", text_lower) is not None


def classify_topic(
    title: str,
    body: str = "",
    keywords: dict[str, Any] | None = None,
) -> TopicCategory | None:
    """Classify an item into a topic.

    Args:
        title: Item headline.
        body: Item body text.
        keywords: Topic label → keyword list mapping (from
            ``config/keyword_dicts/topics.yaml``). Labels outside the
            topic set are ignored. Falls back to the module defaults
            when empty.

    Returns:
        The first topic in priority order with a keyword hit, or None.
    """
    text_lower = f"{title or ''} {body or ''}".lower()
    if not text_lower.strip():
        return None

    keyword_map = keywords or DEFAULT_KEYWORDS

    for topic in PRIORITY_ORDER:
        topic_keywords = keyword_map.get(topic.value) or []
        if any(_keyword_hit(text_lower, kw) for kw in topic_keywords if isinstance(kw, str)):
            return topic

    return None
