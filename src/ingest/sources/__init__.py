"""Source adapters and the registry that builds them from config."""

from __future__ import annotations

import logging

from ingest.config import AppConfig
from ingest.llm import OllamaClient
from ingest.sources.base import SourceAdapter
from ingest.sources.brave import BraveSearchSource
from ingest.sources.generative import GenerativeSource
from ingest.sources.naver import NaverNewsSource
from ingest.sources.newsapi import NewsApiSource

logger = logging.getLogger(__name__)

SOURCE_NAMES = ("naver", "newsapi", "brave", "generative")


def build_sources(config: AppConfig, client: OllamaClient | None = None) -> list[SourceAdapter]:
    """Instantiate the adapters listed in ``sources.enabled``, in that order."""
    timeout = config.sources.timeout
    tz_name = config.collection.reference_timezone
    sources: list[SourceAdapter] = []

    for name in config.sources.enabled:
        if name == "naver":
            sources.append(NaverNewsSource(timeout=timeout, tz_name=tz_name))
        elif name == "newsapi":
            sources.append(NewsApiSource(timeout=timeout, tz_name=tz_name))
        elif name == "brave":
            sources.append(BraveSearchSource(timeout=timeout, topic_keywords=config.keywords.topics))
        elif name == "generative":
            sources.append(GenerativeSource(client or OllamaClient.from_env()))
        else:
            logger.warning("Unknown source '%s' in config, skipping (known: %s)", name, SOURCE_NAMES)

    logger.info("Built %d sources: %s", len(sources), [s.name for s in sources])
    return sources


__all__ = [
    "BraveSearchSource",
    "GenerativeSource",
    "NaverNewsSource",
    "NewsApiSource",
    "SourceAdapter",
    "build_sources",
]
