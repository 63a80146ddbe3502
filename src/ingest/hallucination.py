"""Heuristic detection of fabricated news items.

Generative sources occasionally invent articles: placeholder text, looping
sentences, or plausible-looking entertainment stories with precise box-office
numbers.  Each heuristic below adds a fixed penalty; the total is compared
against a threshold (30 by default) and clamped to 100.

Signals and penalties:

  title < 10 chars                               +20
  body < 100 chars                               +15
  title > 200 chars                              +10
  body > 10,000 chars                            +10
  10+ char run repeated 3+ times in a row        +5 per run
  AI / placeholder vocabulary                    +10 per keyword
  one word > 15% of body tokens                  +15
  letter ratio < 50% (bodies > 50 chars)         +10
  source media missing or < 2 chars              +5
  sentence punctuation < 0.5% (bodies > 200)     +10
  first sentence repeated in > 30% of sentences  +20
  quoted work title + statistic                  +25
  entertainment keyword + statistic              +15
  year + statistic + quoted work title           +20

The scorer is a pure function; adding a signal to otherwise identical
input can only raise the score.
"""

from __future__ import annotations

import logging
import re
from collections import Counter

from ingest.news_types import HallucinationScore

logger = logging.getLogger(__name__)

SUSPICIOUS_THRESHOLD = 30
MAX_SCORE = 100

TITLE_MIN_CHARS = 10
TITLE_MAX_CHARS = 200
BODY_MIN_CHARS = 100
BODY_MAX_CHARS = 10_000

AI_KEYWORDS = (
    "생성된",
    "AI가",
    "인공지능이",
    "테스트",
    "샘플",
    "예시",
    "더미",
    "fake",
    "test",
    "sample",
    "generated",
    "hallucination",
    "예제",
    "예상",
)

ENTERTAINMENT_KEYWORDS = ("영화", "드라마", "개봉", "관객", "흥행", "예매율", "박스오피스")

_QUOTE_CHARS = "'\"‘’“”"
_QUOTED_TITLE_RE = re.compile(rf"[{_QUOTE_CHARS}]([^{_QUOTE_CHARS}]{{2,30}})[{_QUOTE_CHARS}]")
_MOVIE_TITLE_RE = re.compile(rf"영화\s*[{_QUOTE_CHARS}]([^{_QUOTE_CHARS}]{{2,30}})[{_QUOTE_CHARS}]")
_DRAMA_TITLE_RE = re.compile(rf"드라마\s*[{_QUOTE_CHARS}]([^{_QUOTE_CHARS}]{{2,30}})[{_QUOTE_CHARS}]")

_STATISTIC_PATTERNS = (
    re.compile(r"\d+만\s*(명|원|개|건)"),
    re.compile(r"\d+억\s*(원|명)"),
    re.compile(r"\d+천\s*(명|원)"),
    re.compile(r"\d+만\s*명의\s*관객"),
    re.compile(r"\d+만\s*명이\s*관람"),
    re.compile(r"관객\s*\d+만\s*명"),
    re.compile(r"흥행\s*\d+만"),
    re.compile(r"예매율\s*\d+%"),
)

_REPEATED_RUN_RE = re.compile(r"(.{10,})\1{2,}")
_LETTER_RE = re.compile(r"[a-zA-Z가-힣]")
_SENTENCE_END_RE = re.compile(r"[.!?。！？]")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?。！？\n]")
_YEAR_RE = re.compile(r"\d{4}년")


def extract_work_titles(text: str) -> list[str]:
    """Extract quoted work titles (films, dramas, books) from *text*.

    Returns unique titles in order of first appearance.
    """
    titles: list[str] = []
    for pattern in (_QUOTED_TITLE_RE, _MOVIE_TITLE_RE, _DRAMA_TITLE_RE):
        for match in pattern.finditer(text):
            title = match.group(1).strip()
            if 2 <= len(title) <= 30 and title not in titles:
                titles.append(title)
    return titles


def has_specific_statistics(text: str) -> bool:
    """True when *text* carries a precise head-count or money figure."""
    return any(pattern.search(text) for pattern in _STATISTIC_PATTERNS)


def _word_skew(body: str) -> bool:
    words = [w for w in body.split() if len(w) > 2]
    if not words:
        return False
    _, top = Counter(words).most_common(1)[0]
    return top / len(words) > 0.15


def _first_sentence_repeated(body: str) -> bool:
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(body) if len(s.strip()) > 10]
    if len(sentences) <= 1:
        return False
    first = sentences[0].strip()
    repeats = sum(1 for s in sentences if s.strip() == first)
    return repeats > len(sentences) * 0.3


def score_hallucination(
    title: str,
    body: str,
    source_media: str,
    threshold: int = SUSPICIOUS_THRESHOLD,
) -> HallucinationScore:
    """Score how likely an item is to be fabricated.

    Args:
        title: Item headline.
        body: Item body text.
        source_media: Name of the publishing outlet.
        threshold: Score at or above which the item is suspicious.

    Returns:
        HallucinationScore with the clamped score and the reasons that
        contributed to it.
    """
    title = title or ""
    body = body or ""
    reasons: list[str] = []
    score = 0

    if len(title) < TITLE_MIN_CHARS:
        reasons.append(f"title too short (<{TITLE_MIN_CHARS} chars)")
        score += 20
    if len(body) < BODY_MIN_CHARS:
        reasons.append(f"body too short (<{BODY_MIN_CHARS} chars)")
        score += 15
    if len(title) > TITLE_MAX_CHARS:
        reasons.append(f"title too long (>{TITLE_MAX_CHARS} chars)")
        score += 10
    if len(body) > BODY_MAX_CHARS:
        reasons.append(f"body too long (>{BODY_MAX_CHARS:,} chars)")
        score += 10

    repeated_runs = sum(1 for _ in _REPEATED_RUN_RE.finditer(body))
    if repeated_runs:
        reasons.append(f"repeated phrases: {repeated_runs}")
        score += repeated_runs * 5

    lower_title = title.lower()
    lower_body = body.lower()
    found = [
        kw for kw in AI_KEYWORDS
        if kw.lower() in lower_body or kw.lower() in lower_title
    ]
    if found:
        reasons.append(f"AI/placeholder vocabulary: {', '.join(found[:3])}")
        score += len(found) * 10

    if _word_skew(body):
        reasons.append("single word dominates body")
        score += 15

    if len(body) > 50 and len(_LETTER_RE.findall(body)) / len(body) < 0.5:
        reasons.append("low letter ratio (symbols/digits dominate)")
        score += 10

    if not source_media or len(source_media.strip()) < 2:
        reasons.append("missing source media")
        score += 5

    if len(body) > 200 and len(_SENTENCE_END_RE.findall(body)) / len(body) < 0.005:
        reasons.append("too little sentence punctuation")
        score += 10

    if _first_sentence_repeated(body):
        reasons.append("first sentence repeated")
        score += 20

    work_titles = extract_work_titles(f"{title} {body}")
    has_stats = has_specific_statistics(body)

    if work_titles and has_stats:
        reasons.append(f"quoted work title with statistics: {', '.join(work_titles[:2])}")
        score += 25

    if has_stats and any(kw in body or kw in title for kw in ENTERTAINMENT_KEYWORDS):
        reasons.append("entertainment story with statistics")
        score += 15

    if has_stats and work_titles and _YEAR_RE.search(body):
        reasons.append("year, statistic and work title all present")
        score += 20

    return HallucinationScore(
        score=min(MAX_SCORE, score),
        suspicious=score >= threshold,
        reasons=reasons,
    )


def is_hallucinated(
    title: str,
    body: str,
    source_media: str,
    threshold: int = SUSPICIOUS_THRESHOLD,
) -> bool:
    """Score an item and log a warning when it looks fabricated."""
    result = score_hallucination(title, body, source_media, threshold)
    if result.suspicious:
        logger.warning(
            "Suspected hallucination (score=%d): %.50s (%s)",
            result.score, title, "; ".join(result.reasons),
        )
    return result.suspicious
