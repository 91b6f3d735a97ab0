"""Utility helpers for the vinyl tracker service."""

from __future__ import annotations

from datetime import datetime, timezone


def describe_error(exc: BaseException) -> str:
    """Return the message carried by an exception, or a generic fallback."""

    message = str(exc).strip()
    return message or "Unknown error"


def backoff_delay(base_delay: float, attempt: int) -> float:
    """Return the wait before retrying after failed attempt ``attempt``.

    Attempts are numbered from 1, so a one second base waits 2s, 4s, 8s...
    """

    return base_delay * (2**attempt)


def parse_discogs_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 Discogs timestamp into a naive UTC datetime."""

    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
