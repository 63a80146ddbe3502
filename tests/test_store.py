"""Tests for the JSON file store."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from conftest import REFERENCE_DATE, make_item
from ingest.errors import DuplicateRecordError, PersistenceError
from ingest.news_types import NewsCategory, NormalizedItem, TopicCategory
from ingest.store import JsonNewsStore


class TestInsert:
    def test_insert_returns_id_and_writes_file(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "news.json"
        store = JsonNewsStore(path)
        item_id = store.insert_item(make_item("가온"))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data) == 1
        assert data[0]["id"] == item_id
        assert data[0]["category"] == "한국뉴스"
        assert data[0]["published_date"] == REFERENCE_DATE.isoformat()
        assert "created_at" in data[0]

    def test_korean_text_stored_unescaped(self, tmp_path: Path) -> None:
        path = tmp_path / "news.json"
        JsonNewsStore(path).insert_item(make_item("가온"))
        assert "가온" in path.read_text(encoding="utf-8")

    def test_duplicate_link_violates_unique_constraint(self, store: JsonNewsStore) -> None:
        store.insert_item(make_item("가온", canonical_link="https://news.example.com/a"))
        with pytest.raises(DuplicateRecordError):
            store.insert_item(make_item("나래", canonical_link="http://news.example.com/a/"))

    def test_items_without_link_never_collide(self, store: JsonNewsStore) -> None:
        store.insert_item(make_item("가온", canonical_link=None))
        store.insert_item(make_item("나래", canonical_link=None))
        assert len(store.all_records()) == 2

    def test_reopen_reads_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "news.json"
        item_id = JsonNewsStore(path).insert_item(make_item("가온"))
        reopened = JsonNewsStore(path)
        assert reopened.find_by_canonical_link("https://news.example.co.kr/article/가온") == item_id

    def test_corrupt_file_raises_persistence_error(self, tmp_path: Path) -> None:
        path = tmp_path / "news.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            JsonNewsStore(path).insert_item(make_item("가온"))


class TestQueries:
    def test_find_by_link_normalizes(self, store: JsonNewsStore) -> None:
        item_id = store.insert_item(make_item("가온", canonical_link="https://news.example.com/a?utm=x"))
        assert store.find_by_canonical_link("http://news.example.com/a/") == item_id
        assert store.find_by_canonical_link("https://news.example.com/b") is None
        assert store.find_by_canonical_link("") is None

    def test_recent_for_similarity_window(self, store: JsonNewsStore) -> None:
        store.insert_item(make_item("가온", published_date=REFERENCE_DATE - timedelta(days=7)))
        store.insert_item(make_item("나래", published_date=REFERENCE_DATE - timedelta(days=8)))
        rows = store.find_recent_for_similarity(REFERENCE_DATE - timedelta(days=7))
        assert [r.published_date for r in rows] == [REFERENCE_DATE - timedelta(days=7)]
        assert rows[0].title == make_item("가온").title

    def test_failed_translations_and_update(self, store: JsonNewsStore) -> None:
        failed_id = store.insert_item(make_item("가온", NewsCategory.THAI, translation_failed=True))
        store.insert_item(make_item("나래"))

        rows = store.find_failed_translations(limit=10)
        assert [r["id"] for r in rows] == [failed_id]

        store.update_translation(failed_id, "새 제목", "새 본문", False)
        assert store.find_failed_translations(limit=10) == []
        record = store.all_records()[0]
        assert record["title"] == "새 제목"
        assert record["content_translated"] == "새 본문"

    def test_update_unknown_id(self, store: JsonNewsStore) -> None:
        with pytest.raises(PersistenceError):
            store.update_translation("missing", "t", None, False)


class TestRecordRoundTrip:
    def test_from_record_restores_item(self) -> None:
        item = make_item(
            "가온",
            NewsCategory.THAI,
            translated_body="번역 본문",
            topic_category=TopicCategory.ECONOMY,
            source_api="newsapi",
        )
        assert NormalizedItem.from_record(item.to_record()) == item
