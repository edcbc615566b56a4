"""UTC datetime helpers."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def access_expiry(now: datetime, access_hours: int | None) -> datetime | None:
    """Expiry of a purchase's access window; None means access never expires."""
    if access_hours is None:
        return None
    return now + timedelta(hours=access_hours)


def is_access_valid(expires_at: datetime | None, now: datetime | None = None) -> bool:
    if expires_at is None:
        return True
    return (now or utc_now()) < expires_at
