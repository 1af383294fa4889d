"""UTC timestamp helpers.

Timestamps are stored as fixed-width ISO-8601 strings (always with
microseconds) so SQLite's lexicographic comparison orders them correctly,
which the lease expiry query relies on.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def now_iso() -> str:
    return iso(utc_now())


def iso_after(seconds: float, start: datetime | None = None) -> str:
    return iso((start or utc_now()) + timedelta(seconds=seconds))
