"""Time helpers shared by the store, resolver and analytics."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes.

    SQLite hands back naive datetimes even for timezone-aware columns;
    everything written by this service is UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when an expiry is set and has been reached."""
    if expires_at is None:
        return False
    return ensure_utc(expires_at) <= (now or utcnow())


def expiry_from_days(expires_in_days: Optional[int], now: Optional[datetime] = None) -> Optional[datetime]:
    if expires_in_days is None:
        return None
    return (now or utcnow()) + timedelta(days=expires_in_days)
