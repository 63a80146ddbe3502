"""Batched insert with per-item duplicate handling.

Items are split into chunks (10 by default) and the chunks run
concurrently.  Every item is checked by the dedup engine right before
its insert; engine-detected duplicates and unique-constraint violations
from the store are both counted as skipped, never as failures.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ingest.dedup import DedupEngine
from ingest.errors import DuplicateRecordError
from ingest.news_types import BatchResult, NormalizedItem
from ingest.store import NewsStore

logger = logging.getLogger(__name__)

# Per-item outcomes
SUCCESS = "success"
SKIPPED = "skipped"
FAILED = "failed"


async def _insert_one(
    item: NormalizedItem,
    store: NewsStore,
    dedup: DedupEngine | None,
) -> tuple[str, str | None]:
    if dedup is not None:
        decision = await dedup.check(item)
        if decision.is_duplicate:
            logger.info("Skipping duplicate (%s): %.60s", decision.reason, item.title)
            return SKIPPED, None

    try:
        item_id = await asyncio.to_thread(store.insert_item, item)
    except DuplicateRecordError:
        logger.info("Skipping duplicate (unique constraint): %.60s", item.title)
        return SKIPPED, None
    return SUCCESS, item_id


async def _insert_chunk(
    chunk: Sequence[NormalizedItem],
    store: NewsStore,
    dedup: DedupEngine | None,
) -> list[tuple[str, str | None]]:
    results = await asyncio.gather(
        *(_insert_one(item, store, dedup) for item in chunk),
        return_exceptions=True,
    )
    outcomes: list[tuple[str, str | None]] = []
    for item, result in zip(chunk, results):
        if isinstance(result, BaseException):
            logger.error("Failed to save '%.60s': %s", item.title, result)
            outcomes.append((FAILED, None))
        else:
            outcomes.append(result)
    return outcomes


async def insert_batch(
    items: Sequence[NormalizedItem],
    store: NewsStore,
    dedup: DedupEngine | None = None,
    chunk_size: int = 10,
) -> BatchResult:
    """Persist *items* in concurrent chunks.

    Args:
        items: Accepted items to store.
        store: Storage backend.
        dedup: Engine used for the write-time duplicate check; None
            leaves duplicate detection to the store's constraints.
        chunk_size: Items per chunk.

    Returns:
        BatchResult with success/failed/skipped counts and the ids of the
        persisted items in input order.
    """
    result = BatchResult()
    if not items:
        return result

    chunk_size = max(1, chunk_size)
    chunks = [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]
    chunk_outcomes = await asyncio.gather(*(_insert_chunk(c, store, dedup) for c in chunks))

    for outcomes in chunk_outcomes:
        for status, item_id in outcomes:
            if status == SUCCESS:
                result.success += 1
                if item_id:
                    result.persisted_ids.append(item_id)
            elif status == SKIPPED:
                result.skipped += 1
            else:
                result.failed += 1

    logger.info(
        "Saved %d items (%d skipped as duplicate, %d failed) in %d chunks",
        result.success, result.skipped, result.failed, len(chunks),
    )
    return result
