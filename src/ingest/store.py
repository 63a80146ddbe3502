"""News storage.

``NewsStore`` is the contract the pipeline needs from a storage backend.
``JsonNewsStore`` implements it on a single JSON file so the CLI can run
end to end without a database.  Records are the flat dicts produced by
``NormalizedItem.to_record`` plus ``id`` and ``created_at``.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from ingest.dedup import normalize_url
from ingest.errors import DuplicateRecordError, PersistenceError
from ingest.news_types import NormalizedItem, RecentItem

logger = logging.getLogger(__name__)


class NewsStore(Protocol):
    """Storage backend contract. All methods are blocking."""

    def insert_item(self, item: NormalizedItem) -> str:
        """Insert one item and return its id.

        Raises:
            DuplicateRecordError: A unique constraint rejected the item.
            PersistenceError: Any other storage failure.
        """
        ...

    def find_by_canonical_link(self, url: str) -> str | None: ...

    def find_recent_for_similarity(self, since: date) -> list[RecentItem]: ...

    def find_failed_translations(self, limit: int) -> list[dict[str, Any]]: ...

    def update_translation(
        self,
        item_id: str,
        title: str,
        translated_body: str | None,
        failed: bool,
    ) -> None: ...


class JsonNewsStore:
    """File-backed store with a unique constraint on the article link.

    The whole file is read on first use and rewritten after every change.
    A lock serializes access because the pipeline calls in from worker
    threads.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._records: list[dict[str, Any]] | None = None

    def _load(self) -> list[dict[str, Any]]:
        if self._records is None:
            if self.path.exists():
                try:
                    with open(self.path, encoding="utf-8") as f:
                        data = json.load(f)
                except (json.JSONDecodeError, OSError) as exc:
                    raise PersistenceError(f"Failed to read store {self.path}: {exc}") from exc
                self._records = data if isinstance(data, list) else []
            else:
                self._records = []
        return self._records

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._records, f, ensure_ascii=False, indent=2)
        except OSError as exc:
            raise PersistenceError(f"Failed to write store {self.path}: {exc}") from exc

    def insert_item(self, item: NormalizedItem) -> str:
        with self._lock:
            records = self._load()
            if item.canonical_link:
                key = normalize_url(item.canonical_link)
                for record in records:
                    link = record.get("original_link")
                    if link and normalize_url(link) == key:
                        raise DuplicateRecordError(
                            f"duplicate key value violates unique constraint: {item.canonical_link}"
                        )

            record = item.to_record()
            record["id"] = uuid.uuid4().hex
            record["created_at"] = datetime.now(timezone.utc).isoformat()
            records.append(record)
            self._save()
            return record["id"]

    def find_by_canonical_link(self, url: str) -> str | None:
        if not url:
            return None
        key = normalize_url(url)
        with self._lock:
            for record in self._load():
                link = record.get("original_link")
                if link and normalize_url(link) == key:
                    return record["id"]
        return None

    def find_recent_for_similarity(self, since: date) -> list[RecentItem]:
        rows: list[RecentItem] = []
        with self._lock:
            for record in self._load():
                try:
                    published = date.fromisoformat(str(record.get("published_date")))
                except ValueError:
                    continue
                if published >= since:
                    rows.append(
                        RecentItem(
                            id=record["id"],
                            title=record.get("title") or "",
                            body=record.get("content") or "",
                            published_date=published,
                        )
                    )
        return rows

    def find_failed_translations(self, limit: int) -> list[dict[str, Any]]:
        with self._lock:
            failed = [dict(r) for r in self._load() if r.get("translation_failed")]
        return failed[:limit]

    def update_translation(
        self,
        item_id: str,
        title: str,
        translated_body: str | None,
        failed: bool,
    ) -> None:
        with self._lock:
            for record in self._load():
                if record.get("id") == item_id:
                    record["title"] = title
                    record["content_translated"] = translated_body
                    record["translation_failed"] = failed
                    self._save()
                    return
        raise PersistenceError(f"No record with id {item_id}")

    def all_records(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(r) for r in self._load()]
