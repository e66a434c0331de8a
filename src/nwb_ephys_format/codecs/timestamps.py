"""
Timestamp codec.

Converts between ISO 8601 style UTC timestamp text and float seconds since
the Unix epoch. Parsing is tolerant because timestamp fields are often
optional or hand-written; it returns None instead of raising.
"""

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_TIMESTAMP_PATTERN = re.compile(
    r"^\s*(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2}):(\d{2})([.,]\d+)?Z?\s*$"
)

_MANDATORY_GROUPS = 6


def format_timestamp(seconds: float, digits: int = 0) -> str:
    """
    Format seconds since the epoch as ``YYYY-MM-DDTHH:MM:SS[.fff]Z``.

    Args:
        seconds: Seconds since 1970-01-01T00:00:00Z
        digits: Number of fractional-second digits

    Returns:
        UTC timestamp text, rounded to ``digits`` fractional digits
    """
    if digits < 0:
        raise ValueError(f"digits must be non-negative, got {digits}")
    if not math.isfinite(seconds):
        raise ValueError(f"Cannot format non-finite timestamp {seconds}")

    scale = 10**digits
    whole, fraction = divmod(round(seconds * scale), scale)
    text = (EPOCH + timedelta(seconds=whole)).strftime("%Y-%m-%dT%H:%M:%S")

    if digits:
        text += f".{fraction:0{digits}d}"

    return text + "Z"


def format_datetime(value: datetime, digits: int = 0) -> str:
    """Format a datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_timestamp((value - EPOCH).total_seconds(), digits)


def parse_timestamp(text: Optional[str]) -> Optional[float]:
    """
    Parse timestamp text into seconds since the epoch.

    Accepts ``T`` or a space between date and time, an optional trailing
    ``Z`` and either ``.`` or ``,`` as decimal mark. The value is always
    interpreted as UTC.

    Returns:
        Seconds since the epoch, or None if the text is not a timestamp
    """
    if not isinstance(text, str):
        return None

    match = _TIMESTAMP_PATTERN.match(text)
    if match is None:
        return None

    groups = match.groups()
    if sum(g is not None for g in groups[:_MANDATORY_GROUPS]) < _MANDATORY_GROUPS:
        return None

    year, month, day, hour, minute, second = (int(g) for g in groups[:_MANDATORY_GROUPS])
    try:
        midnight = datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None

    seconds = (midnight - EPOCH).total_seconds() + 3600 * hour + 60 * minute + second

    fraction = groups[_MANDATORY_GROUPS]
    if fraction:
        seconds += float("0." + fraction[1:])

    return seconds
