"""Environment-aware configuration loader.

Loads YAML config from config/ingest.{env}.yaml and keyword
dictionaries from config/keyword_dicts/.  API credentials are never
stored in YAML; they are read from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ingest.errors import ConfigurationError
from ingest.news_types import NewsCategory
from ingest.retry import RetryPolicy

VALID_ENVS = ("dev", "staging", "prod")
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class PathsConfig:
    """Filesystem paths for data I/O."""

    store_path: str = "data/news.json"


@dataclass(frozen=True)
class CollectionConfig:
    """Quota and backfill settings for one collection run."""

    category_targets: dict[NewsCategory, int] = field(
        default_factory=lambda: {c: 10 for c in NewsCategory}
    )
    initial_batch: int = 10
    backfill_rounds: int = 2
    min_backfill_request: int = 3
    over_request_factor: float = 1.5
    deadline_seconds: float | None = None
    reference_timezone: str = "Asia/Seoul"
    source_retry: RetryPolicy = field(default_factory=lambda: RetryPolicy(max_retries=2, base_delay=2.0))


@dataclass(frozen=True)
class TranslationConfig:
    """Translation provider chain and retry budget."""

    providers: tuple[str, ...] = ("ollama", "mymemory")
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    batch_size: int = 5


@dataclass(frozen=True)
class DedupConfig:
    """Duplicate detection thresholds."""

    window_days: int = 7
    similarity_threshold: float = 0.85


@dataclass(frozen=True)
class HallucinationConfig:
    """Fabrication filter threshold."""

    threshold: int = 30


@dataclass(frozen=True)
class PersistenceConfig:
    """Batched insert settings."""

    chunk_size: int = 10


@dataclass(frozen=True)
class SourcesConfig:
    """Which source adapters to build and their HTTP settings."""

    enabled: tuple[str, ...] = ("naver", "newsapi", "brave")
    timeout: int = 15


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT


@dataclass(frozen=True)
class KeywordDicts:
    """Loaded keyword dictionaries."""

    topics: dict[str, list[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    env: str
    paths: PathsConfig
    collection: CollectionConfig
    translation: TranslationConfig
    dedup: DedupConfig
    hallucination: HallucinationConfig
    persistence: PersistenceConfig
    sources: SourcesConfig
    logging: LoggingConfig
    keywords: KeywordDicts


def detect_env(cli_env: str | None = None) -> str:
    """Detect the runtime environment.

    Priority:
      1. Explicit CLI flag
      2. NEWS_ENV environment variable
      3. Default to 'dev'
    """
    env = cli_env or os.environ.get("NEWS_ENV", "dev")
    if env not in VALID_ENVS:
        raise ValueError(f"Invalid environment '{env}'. Must be one of {VALID_ENVS}")
    return env


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_keyword_dicts(config_dir: Path) -> KeywordDicts:
    """Load all keyword dictionary YAML files."""
    topics_path = config_dir / "keyword_dicts" / "topics.yaml"

    topics: dict[str, list[str]] = {}
    if topics_path.exists():
        topics = _load_yaml(topics_path)

    return KeywordDicts(topics=topics)


def _parse_retry(raw: dict[str, Any], default: RetryPolicy) -> RetryPolicy:
    return RetryPolicy(
        max_retries=raw.get("max_retries", default.max_retries),
        base_delay=raw.get("base_delay", default.base_delay),
        max_delay=raw.get("max_delay", default.max_delay),
    )


def _parse_targets(raw: dict[str, Any]) -> dict[NewsCategory, int]:
    """Map category labels from YAML onto the closed category set."""
    targets = {c: 10 for c in NewsCategory}
    for label, target in raw.items():
        try:
            category = NewsCategory(label)
        except ValueError:
            raise ConfigurationError(f"Unknown category in category_targets: {label!r}") from None
        if not isinstance(target, int) or target < 0:
            raise ConfigurationError(f"Invalid target for {label}: {target!r}")
        targets[category] = target
    return targets


def load_config(
    env: str | None = None,
    config_dir: Path | None = None,
) -> AppConfig:
    """Load and parse the YAML config for the given environment.

    Args:
        env: The environment name (dev/staging/prod). Auto-detected if None.
        config_dir: Override the config directory path.

    Returns:
        Fully resolved AppConfig instance.
    """
    resolved_env = detect_env(env)
    resolved_config_dir = config_dir or PROJECT_ROOT / "config"
    config_path = resolved_config_dir / f"ingest.{resolved_env}.yaml"

    raw = _load_yaml(config_path)

    paths_raw = raw.get("paths", {})
    paths = PathsConfig(
        store_path=paths_raw.get("store_path", PathsConfig.store_path),
    )

    collection_raw = raw.get("collection", {})
    collection_defaults = CollectionConfig()
    collection = CollectionConfig(
        category_targets=_parse_targets(collection_raw.get("category_targets", {})),
        initial_batch=collection_raw.get("initial_batch", collection_defaults.initial_batch),
        backfill_rounds=collection_raw.get("backfill_rounds", collection_defaults.backfill_rounds),
        min_backfill_request=collection_raw.get(
            "min_backfill_request", collection_defaults.min_backfill_request
        ),
        over_request_factor=collection_raw.get(
            "over_request_factor", collection_defaults.over_request_factor
        ),
        deadline_seconds=collection_raw.get("deadline_seconds"),
        reference_timezone=collection_raw.get(
            "reference_timezone", collection_defaults.reference_timezone
        ),
        source_retry=_parse_retry(
            collection_raw.get("source_retry", {}), collection_defaults.source_retry
        ),
    )

    translation_raw = raw.get("translation", {})
    translation = TranslationConfig(
        providers=tuple(translation_raw.get("providers", TranslationConfig.providers)),
        retry=_parse_retry(translation_raw.get("retry", {}), RetryPolicy()),
        batch_size=translation_raw.get("batch_size", TranslationConfig.batch_size),
    )

    dedup_raw = raw.get("dedup", {})
    dedup = DedupConfig(
        window_days=dedup_raw.get("window_days", DedupConfig.window_days),
        similarity_threshold=dedup_raw.get(
            "similarity_threshold", DedupConfig.similarity_threshold
        ),
    )

    hallucination = HallucinationConfig(
        threshold=raw.get("hallucination", {}).get("threshold", HallucinationConfig.threshold),
    )

    persistence = PersistenceConfig(
        chunk_size=raw.get("persistence", {}).get("chunk_size", PersistenceConfig.chunk_size),
    )

    sources_raw = raw.get("sources", {})
    sources = SourcesConfig(
        enabled=tuple(sources_raw.get("enabled", SourcesConfig.enabled)),
        timeout=sources_raw.get("timeout", SourcesConfig.timeout),
    )

    logging_raw = raw.get("logging", {})
    logging_cfg = LoggingConfig(
        level=logging_raw.get("level", "INFO"),
        format=logging_raw.get("format", DEFAULT_LOG_FORMAT),
    )

    keywords = _load_keyword_dicts(resolved_config_dir)

    return AppConfig(
        env=resolved_env,
        paths=paths,
        collection=collection,
        translation=translation,
        dedup=dedup,
        hallucination=hallucination,
        persistence=persistence,
        sources=sources,
        logging=logging_cfg,
        keywords=keywords,
    )
