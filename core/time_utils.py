"""
core/time_utils.py
────────────────────────────────────────────────────────────────────────
Caller wall-clock times → canonical UTC strings.

Reminder times arrive as local wall-clock strings at a fixed numeric offset
(IST, +330 min, by default). No tz database is consulted: the offset is
subtracted from the wall-clock fields (any designator on the input is
ignored) and the result is rendered as ``YYYY-MM-DDTHH:MM:SSZ``.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class InvalidTimestamp(ValueError):
    """Raised when a caller-supplied timestamp cannot be parsed."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_utc(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(UTC_FORMAT)


def _parse(raw: str) -> datetime:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidTimestamp(f"empty or non-string timestamp: {raw!r}")
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidTimestamp(f"unparseable timestamp: {raw!r}") from exc


def normalize(local_timestamp: str, source_offset_minutes: int = 330) -> str:
    """
    Interpret `local_timestamp` as wall-clock time at `source_offset_minutes`
    east of UTC and return it as a UTC string.

    A trailing `Z` or numeric offset does not change that reading: only the
    wall-clock fields are used.
    """
    parsed = _parse(local_timestamp).replace(tzinfo=None)
    shifted = parsed - timedelta(minutes=source_offset_minutes)
    return format_utc(shifted.replace(tzinfo=timezone.utc))


def parse_utc(utc_timestamp: str) -> datetime:
    """Stored UTC string → aware datetime. Naive input is taken as UTC."""
    parsed = _parse(utc_timestamp)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
