"""
Value parsing for raw analytics payloads.
Pure functions - unparsable input yields None, never an exception.
"""

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterator, Optional, Union

from dateutil import parser as date_parser

# Currency symbols, percent signs, thousands separators and whitespace
_STRIP_PATTERN = re.compile(r'[€$£¥%,\s]')

# Leading float literal, the same prefix parseFloat-style readers accept
_FLOAT_PREFIX = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')

_SLASH_DATE = re.compile(r'^\s*(\d{1,2})/(\d{1,2})/(\d{4})\s*$')
_ISO_DATE = re.compile(r'^\s*(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?\s*$')

_COMPACT_DATE = re.compile(r'^\s*(\d{4})(\d{2})(\d{2})\s*$')

# Bare numbers are values or labels, never dates
_BARE_NUMBER = re.compile(r'^\s*[+-]?\d+(?:\.\d+)?\s*$')

# Fills fields a free-form date omits, so output does not depend on today
_PARSE_DEFAULT = datetime(1970, 1, 1)


def parse_number(raw: Union[str, int, float, bool, None]) -> Optional[float]:
    """
    Convert a raw metric value to a float.

    Accepted inputs:
    - int/float: returned as float (NaN and infinities -> None)
    - bool: 1.0 / 0.0 (binary metrics)
    - str: currency symbols, '%', thousands separators and whitespace are
      stripped, then the leading numeric literal is parsed

    Args:
        raw: Value as received from the analytics API

    Returns:
        Parsed float or None if the value is not numeric

    Example:
        parse_number("€1,234.00") -> 1234.0
        parse_number("12.5%") -> 12.5
        parse_number("n/a") -> None
    """
    if raw is None:
        return None

    if isinstance(raw, bool):
        return 1.0 if raw else 0.0

    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None

    if not isinstance(raw, str):
        return None

    cleaned = _STRIP_PATTERN.sub('', raw)
    if not cleaned:
        return None

    match = _FLOAT_PREFIX.match(cleaned)
    if not match:
        return None

    value = float(match.group(0))
    return value if math.isfinite(value) else None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(raw: Any) -> Optional[str]:
    """
    Convert a raw date string to ISO YYYY-MM-DD.

    Accepted shapes, in order:
    - MM/DD/YYYY (month first, the analytics API convention)
    - YYYY-MM-DD with an optional time suffix, which is discarded
    - YYYYMMDD
    - anything dateutil can parse; timezone-aware values are converted
      to UTC before the date is taken

    Any other bare number (e.g. '5', '32') is rejected rather than read as
    a day or a year.

    Args:
        raw: Date string from a series point

    Returns:
        ISO date string, or None for empty/invalid input
    """
    if isinstance(raw, datetime):
        return _datetime_to_iso(raw)
    if isinstance(raw, date):
        return raw.isoformat()
    if not isinstance(raw, str) or not raw.strip():
        return None

    slash = _SLASH_DATE.match(raw)
    if slash:
        month, day, year = (int(part) for part in slash.groups())
        parsed = _safe_date(year, month, day)
        return parsed.isoformat() if parsed else None

    iso = _ISO_DATE.match(raw)
    if iso:
        year, month, day = (int(part) for part in iso.groups())
        parsed = _safe_date(year, month, day)
        return parsed.isoformat() if parsed else None

    compact = _COMPACT_DATE.match(raw)
    if compact:
        year, month, day = (int(part) for part in compact.groups())
        parsed = _safe_date(year, month, day)
        return parsed.isoformat() if parsed else None

    if _BARE_NUMBER.match(raw):
        return None

    try:
        parsed_dt = date_parser.parse(raw, default=_PARSE_DEFAULT)
    except (ValueError, OverflowError):
        return None

    return _datetime_to_iso(parsed_dt)


def _datetime_to_iso(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


def to_date(iso_date: Union[str, date]) -> date:
    """
    Convert an ISO date string (or date) to a date object.

    Raises:
        ValueError: If the string is not a valid YYYY-MM-DD date
    """
    if isinstance(iso_date, datetime):
        return iso_date.date()
    if isinstance(iso_date, date):
        return iso_date
    return date.fromisoformat(iso_date[:10])


def days_between(start: Union[str, date], end: Union[str, date]) -> int:
    """Number of days from start to end (negative if end precedes start)."""
    return (to_date(end) - to_date(start)).days


def iter_days(start: Union[str, date], end: Union[str, date]) -> Iterator[str]:
    """Yield every ISO date in [start, end] inclusive."""
    current = to_date(start)
    stop = to_date(end)
    while current <= stop:
        yield current.isoformat()
        current += timedelta(days=1)
