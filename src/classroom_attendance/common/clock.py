from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Server wall clock in UTC.

    Note: Every expiry and status computation reads time through a ``Clock`` so
    tests can inject a fixed one. Client timestamps are never used.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """ISO-8601 UTC string with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes coming back from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision; DATETIME(3) columns would round it instead."""
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)
