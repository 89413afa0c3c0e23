from __future__ import annotations

import math
from datetime import UTC, date, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


def today_iso() -> str:
    return date.today().isoformat()


def iso_date(moment: datetime) -> str:
    return moment.astimezone(UTC).date().isoformat()


def parse_timestamp(value: str | datetime | date | None) -> datetime | None:
    """Parse a stored date or timestamp into an aware UTC datetime.

    Date-only values are read as UTC midnight. Unparseable values give None so
    callers can treat them as missing.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
