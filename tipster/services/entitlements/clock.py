"""
Pure time arithmetic for premium entitlements. No I/O, no side effects.
Naive datetimes (SQLite returns them) are interpreted as UTC.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_expired(premium_until: datetime | None, now: datetime) -> bool:
    """True iff an expiry is set and strictly before now."""
    if premium_until is None:
        return False
    return as_utc(premium_until) < as_utc(now)


def is_premium_lapsed(role: str | None, premium_until: datetime | None, now: datetime) -> bool:
    """
    Should a user with this role/expiry be downgraded?
    A PREMIUM role with no expiry counts as lapsed, never as permanent.
    """
    if role != "PREMIUM":
        return False
    return premium_until is None or is_expired(premium_until, now)


def extend(current_expiry: datetime | None, days: int, now: datetime) -> datetime:
    """
    New expiry = max(current_expiry, now) + days.
    Unexpired remaining time stacks; elapsed time is never counted.
    """
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ValueError(f"days must be a positive integer, got {days!r}")
    now = as_utc(now)
    base = now
    if current_expiry is not None and as_utc(current_expiry) > now:
        base = as_utc(current_expiry)
    return base + timedelta(days=days)


def remaining(premium_until: datetime | None, now: datetime) -> timedelta:
    if premium_until is None:
        return timedelta(0)
    left = as_utc(premium_until) - as_utc(now)
    return left if left > timedelta(0) else timedelta(0)


def days_left(premium_until: datetime | None, now: datetime) -> int:
    """Whole days left, rounded up (3.2 days -> 4)."""
    return math.ceil(remaining(premium_until, now).total_seconds() / 86400)


def hours_left(premium_until: datetime | None, now: datetime) -> int:
    return math.ceil(remaining(premium_until, now).total_seconds() / 3600)
