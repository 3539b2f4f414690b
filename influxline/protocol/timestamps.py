"""
Timestamp conversion to Unix epoch nanoseconds.

No float arithmetic is used anywhere, so no precision the source carries is
lost on the way to nanoseconds.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional, Union

LOG = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

PRECISION_MULTIPLIERS = {
    'ns': 1,
    'us': 1_000,
    'ms': 1_000_000,
    's': 1_000_000_000,
}

# Splits "2024-01-02T03:04:05.123456789+00:00" into base, fraction and offset
_ISO_FRACTION = re.compile(r'^(?P<base>[^.,]+?)(?:[.,](?P<fraction>\d+))?(?P<offset>Z|[+-]\d{2}:?\d{2})?$')


def datetime_to_nanos(dt: datetime) -> int:
    """
    Convert a datetime to nanoseconds since the epoch.

    Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - EPOCH
    return ((delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds) * 1_000


def parse_iso8601_nanos(text: str) -> int:
    """
    Parse an ISO-8601 timestamp keeping up to nine fractional digits.

    datetime.fromisoformat stops at microseconds, so the fraction is split
    off and added back as integer nanoseconds.

    Raises:
        ValueError: if the text is not a timestamp or has more than nine
            fractional digits
    """
    match = _ISO_FRACTION.match(text.strip())
    if not match:
        raise ValueError(f"Invalid ISO-8601 timestamp: {text!r}")

    fraction = match.group('fraction') or ''
    if len(fraction) > 9:
        raise ValueError(f"Timestamp {text!r} is finer than nanosecond resolution")

    offset = match.group('offset') or ''
    if offset == 'Z':
        offset = '+00:00'
    elif offset and ':' not in offset:
        offset = f"{offset[:3]}:{offset[3:]}"

    try:
        base = datetime.fromisoformat(match.group('base') + offset)
    except ValueError:
        raise ValueError(f"Invalid ISO-8601 timestamp: {text!r}") from None

    return datetime_to_nanos(base) + int(fraction.ljust(9, '0') or 0)


def to_nanos(timestamp: Optional[Union[datetime, int, str]], precision: str = 'ns') -> Optional[int]:
    """
    Convert a timestamp to nanoseconds since the Unix epoch.

    Args:
        timestamp: datetime, integer epoch value in ``precision`` units,
            ISO-8601 string, or None
        precision: unit of integer timestamps ('ns', 'us', 'ms' or 's')

    Returns:
        Nanoseconds since the epoch, or None when no timestamp was given and
        the server should assign its receive time.
    """
    if timestamp is None:
        return None

    if precision not in PRECISION_MULTIPLIERS:
        raise ValueError(f"Unknown precision {precision!r}, expected one of {sorted(PRECISION_MULTIPLIERS)}")

    if isinstance(timestamp, bool):
        raise TypeError("bool is not a timestamp")

    if isinstance(timestamp, datetime):
        return datetime_to_nanos(timestamp)

    if isinstance(timestamp, int):
        return timestamp * PRECISION_MULTIPLIERS[precision]

    if isinstance(timestamp, str):
        nanos = parse_iso8601_nanos(timestamp)
        LOG.debug(f"Converted timestamp {timestamp} to {nanos} ns")
        return nanos

    raise TypeError(f"Unsupported timestamp type: {type(timestamp).__name__}")
