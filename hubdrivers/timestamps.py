"""Timestamp parsing and formatting for station attributes."""
from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from typing import Any, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

FALLBACK_PATTERN = "%Y-%m-%d %H:%M:%S %z"
FULL_FORMAT = "%Y-%m-%d %H:%M:%S %Z"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S %Z"

# ISO zoned form, e.g. "2025-04-24T06:53:00-06:00[America/Denver]".
_REGION_ID = re.compile(r"\[([^\]]+)\]$")


class TimestampError(ValueError):
    """Raised when a value cannot be read as a timestamp."""


@lru_cache(maxsize=32)
def resolve_timezone(name: str) -> tzinfo:
    if not name:
        raise TimestampError("time zone name must not be empty")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise TimestampError(f"unknown time zone: {name}") from exc


def parse_timestamp(value: Any) -> datetime:
    """Return an aware datetime, trying ISO-8601 before the fallback pattern.

    Naive values are taken to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip() if value is not None else ""
        if not text:
            raise TimestampError("empty timestamp")
        parsed = _parse_text(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_text(text: str) -> datetime:
    region = None
    match = _REGION_ID.search(text)
    if match:
        region = resolve_timezone(match.group(1))
        text = text[: match.start()].rstrip()
    iso = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        try:
            parsed = datetime.strptime(text, FALLBACK_PATTERN)
        except ValueError as exc:
            raise TimestampError(f"unrecognised timestamp: {text!r}") from exc
    if region is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=region)
    return parsed


def expand_timestamp(value: Any, tz: tzinfo) -> Tuple[str, str, str]:
    """Return ``(full, date, time)`` strings for ``value`` rendered in ``tz``."""
    local = parse_timestamp(value).astimezone(tz)
    return local.strftime(FULL_FORMAT), local.strftime(DATE_FORMAT), local.strftime(TIME_FORMAT)


__all__ = [
    "TimestampError",
    "resolve_timezone",
    "parse_timestamp",
    "expand_timestamp",
    "FALLBACK_PATTERN",
]
