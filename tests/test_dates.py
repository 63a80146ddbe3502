"""Tests for reference-calendar date helpers."""

from __future__ import annotations

from datetime import date, timedelta
from unittest.mock import patch

import pytest

from ingest.dates import clamp_run_date, parse_iso_date, parse_published_date, today_in

TODAY = date(2025, 3, 14)


class TestParseIsoDate:
    def test_valid(self) -> None:
        assert parse_iso_date("2025-03-14") == TODAY

    @pytest.mark.parametrize("value", ["2024-13-45", "2025-02-30", "14/03/2025", "2025-3-14", "", None])
    def test_invalid(self, value: str | None) -> None:
        assert parse_iso_date(value) is None


class TestParsePublishedDate:
    def test_plain_date(self) -> None:
        assert parse_published_date("2025-03-14") == TODAY

    def test_iso_timestamp_converted_to_seoul(self) -> None:
        # 15:30 UTC is 00:30 the next day in Seoul
        assert parse_published_date("2025-03-13T15:30:00Z") == TODAY

    def test_iso_timestamp_same_day(self) -> None:
        assert parse_published_date("2025-03-14T01:00:00+09:00") == TODAY

    def test_rfc822(self) -> None:
        assert parse_published_date("Fri, 14 Mar 2025 10:15:00 +0900") == TODAY

    def test_naive_timestamp_keeps_its_day(self) -> None:
        assert parse_published_date("2025-03-14T23:59:00") == TODAY

    def test_garbage(self) -> None:
        assert parse_published_date("yesterday") is None


class TestClampRunDate:
    @pytest.fixture(autouse=True)
    def _fixed_today(self):
        with patch("ingest.dates.today_in", return_value=TODAY):
            yield

    def test_none_is_today(self) -> None:
        assert clamp_run_date(None) == TODAY

    def test_today_passes_through(self) -> None:
        assert clamp_run_date("2025-03-14") == TODAY

    def test_past_clamped(self) -> None:
        assert clamp_run_date("2025-03-13") == TODAY

    def test_future_clamped(self) -> None:
        assert clamp_run_date(TODAY + timedelta(days=3)) == TODAY

    def test_malformed_clamped(self) -> None:
        assert clamp_run_date("2024-13-45") == TODAY


class TestTodayIn:
    def test_returns_date(self) -> None:
        assert isinstance(today_in("Asia/Seoul"), date)
