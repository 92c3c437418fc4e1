"""Reference-timezone date helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

ET_ZONE = ZoneInfo("America/New_York")


def utc_now() -> datetime:
    """Return current UTC time with second precision."""
    return datetime.now(UTC).replace(microsecond=0)


def et_today(now: datetime | None = None) -> str:
    """Return the slate date (`YYYY-MM-DD`) in the reference timezone."""
    current = now if now is not None else utc_now()
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    return current.astimezone(ET_ZONE).date().isoformat()


def validate_target_date(value: str) -> str:
    """Return a normalized `YYYY-MM-DD` date or raise ValueError."""
    raw = value.strip()
    try:
        parsed = date.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f"invalid target date (expected YYYY-MM-DD): {value}") from exc
    normalized = parsed.isoformat()
    if normalized != raw:
        raise ValueError(f"invalid target date (expected YYYY-MM-DD): {value}")
    return normalized
