"""Category-balanced collection with bounded backfill.

One run moves through four stages:

  Collect    every source serving a category is asked for the initial
             batch; fetches for all sources and categories run
             concurrently.
  Process    candidates, in source-return order, go through validation
             and the hallucination filter until the category's remaining
             quota is covered; those items are translated in batches of 5
             and then claimed against this run and the stored history on
             their translated text.  Items lost to duplicates are replaced
             from the candidates left over.
  Backfill   up to ``backfill_rounds`` rounds; each deficient category
             requests ``max(3, ceil(deficit × 1.5))`` more candidates from
             the sources serving it, one source at a time and sized to the
             deficit left when that source is asked, until filled.
  Terminal   every category's collected/target is reported; shortfalls
             are logged, never raised.

Only a missing source list aborts a run (``ConfigurationError`` at
construction).  An optional deadline stops new batches and rounds from
starting; whatever was accepted so far is still returned.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date
from typing import Any, Sequence

from ingest.classifiers.topic import classify_topic
from ingest.config import AppConfig, CollectionConfig
from ingest.dates import clamp_run_date
from ingest.dedup import DedupEngine
from ingest.errors import ConfigurationError, SourceError, SourceRateLimitError
from ingest.hallucination import SUSPICIOUS_THRESHOLD, is_hallucinated
from ingest.news_types import Candidate, CategoryQuota, NewsCategory, NormalizedItem, RunResult
from ingest.persistence import insert_batch
from ingest.retry import retry_call
from ingest.sources.base import SourceAdapter
from ingest.store import NewsStore
from ingest.translate import Translator, translate_item_if_needed
from ingest.validation import normalize_candidate

logger = logging.getLogger(__name__)


class CollectionOrchestrator:
    """Drive one collection run across all sources and categories."""

    def __init__(
        self,
        sources: Sequence[SourceAdapter],
        translator: Translator,
        store: NewsStore,
        collection: CollectionConfig | None = None,
        dedup: DedupEngine | None = None,
        hallucination_threshold: int = SUSPICIOUS_THRESHOLD,
        translation_batch_size: int = 5,
        persist_chunk_size: int = 10,
        topic_keywords: dict[str, Any] | None = None,
    ) -> None:
        if not sources:
            raise ConfigurationError("No news sources configured")
        self.sources = list(sources)
        self.translator = translator
        self.store = store
        self.collection = collection or CollectionConfig()
        self.dedup = dedup or DedupEngine(store)
        self.hallucination_threshold = hallucination_threshold
        self.translation_batch_size = max(1, translation_batch_size)
        self.persist_chunk_size = persist_chunk_size
        self.topic_keywords = topic_keywords
        self._deadline: float | None = None

        for category, target in self.collection.category_targets.items():
            if target > 0 and not self._sources_for(category):
                logger.warning("No configured source serves %s", category.value)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        sources: Sequence[SourceAdapter],
        translator: Translator,
        store: NewsStore,
    ) -> CollectionOrchestrator:
        return cls(
            sources,
            translator,
            store,
            collection=config.collection,
            dedup=DedupEngine(
                store,
                window_days=config.dedup.window_days,
                threshold=config.dedup.similarity_threshold,
            ),
            hallucination_threshold=config.hallucination.threshold,
            translation_batch_size=config.translation.batch_size,
            persist_chunk_size=config.persistence.chunk_size,
            topic_keywords=config.keywords.topics,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _sources_for(self, category: NewsCategory) -> list[SourceAdapter]:
        return [s for s in self.sources if s.serves(category)]

    def _deadline_passed(self) -> bool:
        if self._deadline is None:
            return False
        return asyncio.get_running_loop().time() >= self._deadline

    def backfill_request_size(self, deficit: int) -> int:
        """Number of candidates to request for a category short by *deficit*."""
        return max(
            self.collection.min_backfill_request,
            math.ceil(deficit * self.collection.over_request_factor),
        )

    async def _fetch(
        self,
        source: SourceAdapter,
        category: NewsCategory,
        day: date,
        limit: int,
    ) -> list[Candidate]:
        """Fetch from one source; failures are logged and yield nothing."""
        try:
            return await retry_call(
                lambda: asyncio.to_thread(source.fetch, day, category, limit),
                self.collection.source_retry,
                retry_on=(SourceRateLimitError,),
                label=f"{source.name}[{category.value}]",
            )
        except SourceError as exc:
            logger.warning("Source %s failed for %s: %s", source.name, category.value, exc)
        except Exception as exc:
            logger.error("Source %s crashed for %s: %s", source.name, category.value, exc, exc_info=True)
        return []

    # ------------------------------------------------------------------
    # Process stage
    # ------------------------------------------------------------------
    def _screen(
        self,
        category: NewsCategory,
        candidates: Sequence[Candidate],
        room: int,
        result: RunResult,
    ) -> tuple[list[NormalizedItem], int]:
        """Validate and filter candidates until *room* of them pass.

        Returns:
            The passing items and the number of candidates consumed.
        """
        passed: list[NormalizedItem] = []
        consumed = 0

        for candidate in candidates:
            if len(passed) >= room:
                break
            consumed += 1

            item = normalize_candidate(candidate, result.reference_date, self.collection.reference_timezone)
            if item is None or item.category is not category:
                result.rejected_invalid += 1
                continue

            if is_hallucinated(item.title, item.body, item.source_media, self.hallucination_threshold):
                result.rejected_hallucination += 1
                continue

            passed.append(item)

        return passed, consumed

    async def _translate_all(self, items: list[NormalizedItem]) -> tuple[list[NormalizedItem], bool]:
        """Translate *items* in fixed-size batches.

        Returns:
            The translated items and whether the deadline stopped the
            remaining batches.
        """
        translated: list[NormalizedItem] = []
        size = self.translation_batch_size

        for start in range(0, len(items), size):
            if self._deadline_passed():
                return translated, True

            batch = items[start:start + size]
            outcomes = await asyncio.gather(
                *(translate_item_if_needed(item, self.translator) for item in batch),
                return_exceptions=True,
            )
            for item, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error("Translation crashed for '%.50s': %s", item.title, outcome)
                    item.translation_failed = True
                    translated.append(item)
                else:
                    translated.append(outcome)

        return translated, False

    async def _process(
        self,
        category: NewsCategory,
        candidates: Sequence[Candidate],
        result: RunResult,
    ) -> int:
        """Run candidates through every stage and top up the quota.

        Duplicates are claimed on the translated text, which is what the
        store holds; a batch that loses items to duplicates is topped up
        from the remaining candidates.

        Returns:
            Number of items accepted.
        """
        quota = result.quotas[category]
        pending = list(candidates)
        accepted = 0

        while pending and quota.deficit > 0:
            screened, consumed = self._screen(category, pending, quota.deficit, result)
            pending = pending[consumed:]
            translated, stopped = await self._translate_all(screened)

            for item in translated:
                decision = await self.dedup.claim(item)
                if decision.is_duplicate:
                    result.rejected_duplicate += 1
                    continue
                if item.topic_category is None:
                    item.topic_category = classify_topic(item.title, item.body, self.topic_keywords)
                result.accepted.append(item)
                quota.collected += 1
                accepted += 1
                if item.translation_failed:
                    result.translation_failures += 1

            if stopped:
                result.deadline_hit = True
                break

        if pending and quota.fulfilled:
            logger.debug("%s quota covered; discarding %d remaining candidates", category.value, len(pending))

        logger.info(
            "%s: %d/%d candidates accepted (now %d/%d)",
            category.value, accepted, len(candidates), quota.collected, quota.target,
        )
        return accepted

    # ------------------------------------------------------------------
    # Collect / backfill stages
    # ------------------------------------------------------------------
    async def _collect_category(self, quota: CategoryQuota, result: RunResult) -> None:
        sources = self._sources_for(quota.category)
        batches = await asyncio.gather(
            *(
                self._fetch(source, quota.category, result.reference_date, self.collection.initial_batch)
                for source in sources
            )
        )
        candidates = [c for batch in batches for c in batch]
        logger.info(
            "Collected %d candidates for %s from %d sources",
            len(candidates), quota.category.value, len(sources),
        )
        if self._deadline_passed():
            result.deadline_hit = True
            return
        await self._process(quota.category, candidates, result)

    async def _backfill_category(self, quota: CategoryQuota, result: RunResult) -> None:
        for source in self._sources_for(quota.category):
            if quota.fulfilled:
                break
            if self._deadline_passed():
                result.deadline_hit = True
                break
            request = self.backfill_request_size(quota.deficit)
            logger.info(
                "Backfill %s from %s: deficit %d, requesting %d",
                quota.category.value, source.name, quota.deficit, request,
            )
            candidates = await self._fetch(source, quota.category, result.reference_date, request)
            await self._process(quota.category, candidates, result)

    async def run(self, reference_date: date) -> RunResult:
        """Execute one collection run for *reference_date*.

        Returns:
            RunResult with the accepted items and every category's
            collected/target counts, including shortfalls.
        """
        loop = asyncio.get_running_loop()
        deadline_seconds = self.collection.deadline_seconds
        self._deadline = loop.time() + deadline_seconds if deadline_seconds else None

        result = RunResult(
            reference_date=reference_date,
            quotas={
                category: CategoryQuota(category, target)
                for category, target in self.collection.category_targets.items()
            },
        )

        await self.dedup.load_window(reference_date)

        active = [q for q in result.quotas.values() if q.target > 0]
        await asyncio.gather(*(self._collect_category(q, result) for q in active))

        for round_no in range(1, self.collection.backfill_rounds + 1):
            deficient = [q for q in result.quotas.values() if q.deficit > 0]
            if not deficient:
                break
            if self._deadline_passed():
                result.deadline_hit = True
                logger.warning("Deadline reached; skipping backfill round %d", round_no)
                break
            result.backfill_rounds = round_no
            logger.info(
                "Backfill round %d/%d for %s",
                round_no, self.collection.backfill_rounds,
                ", ".join(q.category.value for q in deficient),
            )
            await asyncio.gather(*(self._backfill_category(q, result) for q in deficient))

        for quota in result.quotas.values():
            if quota.deficit > 0:
                logger.warning(
                    "Category %s short of target: collected=%d, target=%d",
                    quota.category.value, quota.collected, quota.target,
                )

        logger.info(
            "Run %s finished: %d accepted, %d invalid, %d hallucinated, %d duplicate, "
            "%d translation failures, %d backfill rounds%s",
            reference_date, len(result.accepted), result.rejected_invalid,
            result.rejected_hallucination, result.rejected_duplicate,
            result.translation_failures, result.backfill_rounds,
            " (deadline hit)" if result.deadline_hit else "",
        )
        return result


async def collect_and_persist(
    orchestrator: CollectionOrchestrator,
    requested_date: str | date | None = None,
) -> dict[str, Any]:
    """Collect one day's news and persist the accepted items.

    The date defaults to today in the reference timezone; missing,
    malformed, past and future dates are clamped to today.

    Returns:
        Dict with ``success``, ``failed``, ``skipped``, ``total``,
        ``per_category_counts`` and ``translation_failures``.
    """
    day = clamp_run_date(requested_date, orchestrator.collection.reference_timezone)
    run_result = await orchestrator.run(day)

    batch = await insert_batch(
        run_result.accepted,
        orchestrator.store,
        orchestrator.dedup,
        chunk_size=orchestrator.persist_chunk_size,
    )

    return {
        "date": day.isoformat(),
        "success": batch.success,
        "failed": batch.failed,
        "skipped": batch.skipped,
        "total": len(run_result.accepted),
        "per_category_counts": run_result.per_category_counts,
        "translation_failures": run_result.translation_failures,
        "persisted_ids": batch.persisted_ids,
    }
