"""
Value normalisation for persisted agenda fields.

Topic durations and the meeting's scheduled duration come out of the
document store in whatever shape the writer used: numbers, numeric
strings, or nothing at all. Instants arrive as ISO strings, epoch
seconds, or store timestamp objects. Everything in the engine goes
through these helpers first so arithmetic only ever sees floats and
aware UTC datetimes.

None of these functions raise for bad data; they fall back to a
well-defined default (0 minutes, or None for instants).
"""

import logging
import math
import numbers
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Longest duration a single topic or meeting may claim (about 694 days).
# Larger values are clamped so whole-second and datetime arithmetic stay
# in range.
MAX_DURATION_MINUTES = 1_000_000.0

# Last representable instant; layout times saturate here
MAX_INSTANT = datetime.max.replace(tzinfo=timezone.utc)

_TRUE_STRINGS = frozenset(('true', '1', 'yes', 'y', 'on'))


def _real_number(value: Any) -> Optional[float]:
    """
    float() of any real-valued number (int, float, numpy scalars,
    Decimal, Fraction), or None for anything else.
    """
    # bool is an int subclass; a flag is not a quantity
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        return None
    try:
        return float(value)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Cannot convert {value!r} to float: {e}")
        return None


def coerce_minutes(value: Any) -> float:
    """
    Normalise a duration in minutes to a non-negative float.

    Examples:
        10              -> 10.0
        "10"            -> 10.0
        " 7.5 "         -> 7.5
        numpy.int64(10) -> 10.0
        Decimal("10")   -> 10.0
        None            -> 0.0
        -5              -> 0.0
        "ten"           -> 0.0
        "1e10"          -> MAX_DURATION_MINUTES

    Args:
        value: Raw duration from a topic or meeting record

    Returns:
        Minutes as float in [0, MAX_DURATION_MINUTES]
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, str):
        try:
            minutes = float(value.strip())
        except ValueError:
            logger.debug(f"Unparseable duration {value!r}, using 0")
            return 0.0
    else:
        minutes = _real_number(value)
        if minutes is None:
            logger.debug(f"Unsupported duration type {type(value).__name__}, using 0")
            return 0.0

    if not math.isfinite(minutes) or minutes < 0:
        logger.debug(f"Clamping duration {value!r} to 0")
        return 0.0
    if minutes > MAX_DURATION_MINUTES:
        logger.debug(f"Clamping duration {value!r} to {MAX_DURATION_MINUTES:g}")
        return MAX_DURATION_MINUTES
    return minutes


def coerce_flag(value: Any) -> bool:
    """
    Normalise a stored boolean flag.

    Exports sometimes carry flags as strings or numbers; "false" and
    "0" must read as False.

    Examples:
        True    -> True
        "true"  -> True
        "false" -> False
        1       -> True
        0       -> False
        None    -> False
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    number = _real_number(value)
    if number is not None:
        return number != 0 and not math.isnan(number)
    return False


def minutes_to_seconds(minutes: float) -> int:
    """Whole seconds in a (normalised) number of minutes."""
    return int(round(minutes * 60))


def add_minutes(instant: datetime, minutes: float) -> datetime:
    """instant + minutes, saturating at MAX_INSTANT instead of overflowing."""
    try:
        return instant + timedelta(minutes=minutes)
    except OverflowError:
        logger.debug(f"{instant.isoformat()} + {minutes:g} min out of range, using {MAX_INSTANT.isoformat()}")
        return MAX_INSTANT


def _from_epoch(seconds: float, nanoseconds: float = 0) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(seconds + nanoseconds / 1e9, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def coerce_instant(value: Any) -> Optional[datetime]:
    """
    Normalise a persisted instant to an aware UTC datetime.

    Accepts:
        - datetime (naive values are taken as UTC)
        - ISO-8601 strings, including a trailing 'Z'
        - epoch seconds as any real number (int, float, numpy scalar,
          Decimal)
        - store timestamps: {'seconds': s, 'nanoseconds': n} or the
          '_seconds'/'_nanoseconds' export form
        - objects with to_datetime() or toDate()

    Returns:
        Aware datetime in UTC, or None if missing or unparseable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Unparseable instant {value!r}")
            return None
        return coerce_instant(parsed)

    epoch = _real_number(value)
    if epoch is not None:
        if not math.isfinite(epoch):
            return None
        return _from_epoch(epoch)

    if isinstance(value, dict):
        seconds = _real_number(value.get('seconds', value.get('_seconds')))
        if seconds is None or not math.isfinite(seconds):
            return None
        nanos = _real_number(value.get('nanoseconds', value.get('_nanoseconds', 0)))
        if nanos is None or not math.isfinite(nanos):
            nanos = 0.0
        return _from_epoch(seconds, nanos)

    for attr in ('to_datetime', 'toDate'):
        converter = getattr(value, attr, None)
        if callable(converter):
            try:
                converted = converter()
            except Exception as e:
                logger.debug(f"Timestamp conversion via {attr}() failed: {e}")
                return None
            if isinstance(converted, datetime):
                return coerce_instant(converted)
            return None

    return None
