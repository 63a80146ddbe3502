"""Reference-calendar date helpers.

All "today" comparisons happen on the calendar day of a single reference
timezone (KST by default), regardless of the host clock's zone.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from email.utils import parsedate_to_datetime
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

REFERENCE_TZ = "Asia/Seoul"

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def today_in(tz_name: str = REFERENCE_TZ) -> date:
    """Return today's calendar date in *tz_name*."""
    return datetime.now(ZoneInfo(tz_name)).date()


def parse_iso_date(value: str | None) -> date | None:
    """Parse a strict YYYY-MM-DD string.

    Returns None for anything else, including impossible dates such as
    2024-13-45.
    """
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    if not _ISO_DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_published_date(value: str | None, tz_name: str = REFERENCE_TZ) -> date | None:
    """Parse a published-date value from any supported source format.

    Accepts YYYY-MM-DD, ISO 8601 timestamps (e.g. NewsAPI ``publishedAt``)
    and RFC 822 dates (e.g. Naver ``pubDate``). Timestamps carrying an
    offset are converted to the reference timezone before taking the day.
    """
    if not value or not isinstance(value, str):
        return None
    value = value.strip()

    plain = parse_iso_date(value)
    if plain is not None:
        return plain

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(ZoneInfo(tz_name))
    return parsed.date()


def clamp_run_date(requested: str | date | None, tz_name: str = REFERENCE_TZ) -> date:
    """Resolve the reference date for a collection run.

    Missing, malformed, past and future dates are all replaced by today
    in the reference timezone; only today itself passes through.
    """
    today = today_in(tz_name)
    if requested is None:
        return today

    resolved = requested if isinstance(requested, date) else parse_iso_date(requested)
    if resolved is None:
        logger.warning("Invalid run date %r; using today (%s)", requested, today)
        return today
    if resolved != today:
        logger.warning(
            "Run date %s is %s; clamping to today (%s)",
            resolved, "in the past" if resolved < today else "in the future", today,
        )
        return today
    return resolved
