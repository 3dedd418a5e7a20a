"""
Date handling utilities for email intake.

This module converts the receipt timestamps delivered by the intake
workflow (Gmail ``internalDate`` values, milliseconds since the epoch) into
the system-standard ISO-8601 representation used on every stored record.
Parsing never raises: unusable input falls back to the current time and the
failure is reported through the returned success flag.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)


class DateParsingError(Exception):
    """Custom exception for date parsing failures."""
    pass


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_epoch_millis(value: Any, now: Optional[datetime] = None) -> Tuple[datetime, bool]:
    """
    Parse a milliseconds-since-epoch value into an aware UTC datetime.

    Accepts integers, floats and numeric strings (the workflow sends
    ``internalDate`` as a string). Missing or unparsable values fall back
    to ``now`` (or the current time).

    Args:
        value: Epoch milliseconds as int, float or numeric string
        now: Optional fallback time, mainly for tests

    Returns:
        Tuple containing:
        - Parsed datetime object in UTC
        - Boolean indicating parsing success
    """
    fallback = now or utc_now()
    if value is None or value == "":
        return fallback, False

    try:
        if isinstance(value, bool):
            raise DateParsingError(f"Boolean is not a timestamp: {value}")
        if isinstance(value, str):
            value = value.strip()
            millis = int(value) if value.lstrip("-").isdigit() else int(float(value))
        else:
            millis = int(value)
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc), True
    except (DateParsingError, ValueError, TypeError, OverflowError, OSError) as e:
        logger.warning(f"Unable to parse receipt timestamp {value!r}: {e}")
        return fallback, False


def format_iso_date(dt: datetime) -> str:
    """
    Format datetime object as an ISO-8601 UTC string.

    Produces millisecond precision with a ``Z`` suffix
    (``2024-03-01T09:30:00.000Z``) so stored timestamps sort lexically.

    Args:
        dt: Datetime object to format; naive values are treated as UTC

    Returns:
        ISO formatted date string
    """
    if not dt.tzinfo:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the epoch for ``dt``."""
    if not dt.tzinfo:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)

