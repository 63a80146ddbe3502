"""CLI entry point for the news ingestion pipeline.

Provides two commands:
  - ingest run: Collect, filter, translate and persist one day's news
  - ingest retry-translations: Re-translate stored items whose
    translation failed
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from ingest import __version__
from ingest.config import PROJECT_ROOT, AppConfig, load_config
from ingest.errors import ConfigurationError
from ingest.llm import OllamaClient
from ingest.orchestrator import CollectionOrchestrator, collect_and_persist
from ingest.sources import build_sources
from ingest.store import JsonNewsStore
from ingest.translate import Translator, build_provider, retry_failed_translations

logger = logging.getLogger("ingest")


def _setup_logging(level: str, fmt: str) -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=fmt,
        stream=sys.stderr,
    )


def _resolve_path(path_str: str) -> Path:
    """Resolve a path relative to the project root."""
    p = Path(path_str)
    if p.is_absolute():
        return p
    return (PROJECT_ROOT / p).resolve()


def _build_translator(config: AppConfig, client: OllamaClient) -> Translator:
    provider = build_provider(config.translation.providers, client)
    return Translator(provider, config.translation.retry)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Category-balanced news ingestion pipeline."""


@main.command()
@click.option("--env", type=click.Choice(["dev", "staging", "prod"]), default=None,
              help="Environment (default: dev or NEWS_ENV)")
@click.option("--date", "target_date", default=None,
              help="Collection date in YYYY-MM-DD format (default: today in KST)")
@click.option("--store", "store_path", default=None,
              help="JSON store file (default: paths.store_path from config)")
def run(env: str | None, target_date: str | None, store_path: str | None) -> None:
    """Collect and persist one day's news."""
    config = load_config(env=env)
    _setup_logging(config.logging.level, config.logging.format)

    store = JsonNewsStore(store_path or _resolve_path(config.paths.store_path))
    client = OllamaClient.from_env()

    try:
        translator = _build_translator(config, client)
        sources = build_sources(config, client)
        orchestrator = CollectionOrchestrator.from_config(config, sources, translator, store)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    logger.info("Running collection (env=%s, requested date=%s)", config.env, target_date or "today")
    summary = asyncio.run(collect_and_persist(orchestrator, target_date))

    click.echo(f"Collection complete for {summary['date']}")
    click.echo(f"  Saved:   {summary['success']}")
    click.echo(f"  Skipped: {summary['skipped']} (duplicates)")
    click.echo(f"  Failed:  {summary['failed']}")
    click.echo(f"  Translation failures: {summary['translation_failures']}")
    for category, counts in summary["per_category_counts"].items():
        marker = "" if counts["collected"] >= counts["target"] else "  (short)"
        click.echo(f"  {category}: {counts['collected']}/{counts['target']}{marker}")


@main.command("retry-translations")
@click.option("--env", type=click.Choice(["dev", "staging", "prod"]), default=None,
              help="Environment (default: dev or NEWS_ENV)")
@click.option("--limit", default=10, show_default=True, type=click.IntRange(min=1),
              help="Maximum number of items to re-translate")
@click.option("--store", "store_path", default=None,
              help="JSON store file (default: paths.store_path from config)")
def retry_translations_cmd(env: str | None, limit: int, store_path: str | None) -> None:
    """Re-translate stored items flagged as translation failures."""
    config = load_config(env=env)
    _setup_logging(config.logging.level, config.logging.format)

    store = JsonNewsStore(store_path or _resolve_path(config.paths.store_path))
    try:
        translator = _build_translator(config, OllamaClient.from_env())
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    result = asyncio.run(retry_failed_translations(store, translator, limit))
    click.echo(json.dumps(result, ensure_ascii=False))


if __name__ == "__main__":
    main()
