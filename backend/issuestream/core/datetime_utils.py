"""Datetime helpers.

All instants handled by the ingestion core are timezone-aware UTC.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as aware UTC; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso(value: str) -> datetime:
    """Parse an ISO 8601 timestamp such as ``2024-11-03T10:00:00Z``.

    Raises:
        ValueError: If ``value`` is not a valid timestamp
    """
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def format_iso(value: datetime) -> str:
    """Format as ISO 8601 with a ``Z`` suffix, the format GitHub expects."""
    utc = ensure_utc(value)
    if utc.microsecond:
        return utc.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def to_epoch_millis(value: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(ensure_utc(value).timestamp() * 1000)
