"""Datetime parsing helpers for event payloads."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any


def utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive values for timezone-aware columns; treat them as UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def parse_datetime(value: Any) -> datetime | None:
    """Parse datetimes, dates, and ISO 8601 strings into aware datetimes."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_aware(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            return _as_aware(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None
