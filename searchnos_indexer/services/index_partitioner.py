from __future__ import annotations

from datetime import datetime, timedelta

from searchnos_indexer.models.event import Event
from searchnos_indexer.util.time import (
    TimePolicyError,
    from_epoch_seconds,
    require_utc_aware,
    utc_midnight,
)

DATE_FORMAT = "%Y.%m.%d"


class InvalidTimestamp(ValueError):
    pass


class MalformedIndexName(ValueError):
    pass


def index_name_for_event(prefix: str, event: Event) -> str:
    """Daily partition name "{prefix}-{YYYY.MM.DD}" from the event's UTC created_at."""
    try:
        dt = from_epoch_seconds(event.created_at)
    except TimePolicyError as e:
        raise InvalidTimestamp(f"failed to parse date: {event.created_at}") from e
    # strftime("%Y") does not zero-pad years below 1000 on every platform.
    return f"{prefix}-{dt.year:04d}.{dt.month:02d}.{dt.day:02d}"


def _index_date(index_name: str):
    # The prefix may itself contain '-', so the date is whatever follows the last one.
    _, sep, date_str = index_name.rpartition("-")
    if not sep:
        raise MalformedIndexName(f"index name {index_name!r} has no date suffix")
    try:
        return datetime.strptime(date_str, DATE_FORMAT).date()
    except ValueError as e:
        raise MalformedIndexName(f"index name {index_name!r}: {e}") from e


def can_exist(
    index_name: str,
    current_time: datetime,
    ttl_in_days: int,
    allow_future_days: int,
) -> bool:
    """
    Retention window check for a daily partition.

    Writable iff -allow_future_days <= (current_time - date at 00:00 UTC) < ttl_in_days.
    Pure; evaluated fresh for every write.
    """
    now = require_utc_aware(current_time, "current_time")
    index_time = utc_midnight(_index_date(index_name))
    diff = now - index_time
    return -timedelta(days=allow_future_days) <= diff < timedelta(days=ttl_in_days)
