"""Helpers for the ISO-8601 timestamps exchanged with the remote provider."""

from datetime import UTC, datetime
from typing import Optional


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Naive values are taken as UTC. Returns None for empty or unparseable input.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_epoch_ms(value: Optional[str]) -> Optional[int]:
    """Millisecond epoch of an ISO-8601 timestamp, or None when it can't be parsed."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return int(parsed.timestamp() * 1000)


def epoch_ms_now() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)
