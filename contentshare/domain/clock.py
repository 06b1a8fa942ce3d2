"""Centralized time source."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    # Timezone-aware so stored ISO timestamps compare without ambiguity.
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
