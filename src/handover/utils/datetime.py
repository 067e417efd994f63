"""Date-time helpers."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive timestamp, matching stored columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_millis(now: datetime | None = None) -> int:
    current = now.astimezone(timezone.utc) if now else datetime.now(timezone.utc)
    return int(current.timestamp() * 1000)
