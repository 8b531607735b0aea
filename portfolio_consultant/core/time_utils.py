from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """Return a tz-aware UTC datetime; naive inputs are taken as UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_utc_or_none(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    return to_utc(dt)


__all__ = ["utc_now", "to_utc", "to_utc_or_none"]
