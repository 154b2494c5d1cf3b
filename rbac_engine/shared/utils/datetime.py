"""UTC time for assignment expiry and decision timestamps.

The engine only handles timezone-aware UTC values. SQLite hands back naive
datetimes, so anything read from the store goes through ensure_utc.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to naive values and convert aware ones; None passes through."""
    if dt is None:
        return None
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """True when an assignment expiry is set and is not after ``now``.

    An assignment expiring exactly now is already expired.
    """
    if expires_at is None:
        return False
    return ensure_utc(expires_at) <= (now or utc_now())
