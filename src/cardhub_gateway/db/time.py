"""Time utilities shared by the gateway."""

import time
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def server_time(moment: datetime | None = None) -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision."""
    return (moment or utcnow()).isoformat(timespec="milliseconds")


def now_ms() -> int:
    """Return the current epoch time in milliseconds."""
    return int(time.time() * 1000)
