from __future__ import annotations

from datetime import date, datetime, timezone


class TimePolicyError(ValueError):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def require_utc_aware(dt: datetime, field_name: str) -> datetime:
    """
    Strict policy:
    - dt MUST be timezone-aware
    - converted to UTC
    """
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise TimePolicyError(
            f"{field_name} must be timezone-aware UTC (ISO 8601, e.g. 2025-01-01T00:00:00Z)"
        )
    return dt.astimezone(timezone.utc)


def from_epoch_seconds(ts: int) -> datetime:
    """
    Converts seconds since epoch to an aware UTC datetime.
    Raises TimePolicyError when the value is outside the representable range.
    """
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise TimePolicyError(f"timestamp {ts!r} is not a valid instant: {e}") from e


def utc_midnight(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def utc_iso(dt: datetime) -> str:
    # Stable "Z" suffix for log lines.
    return dt.isoformat().replace("+00:00", "Z")
