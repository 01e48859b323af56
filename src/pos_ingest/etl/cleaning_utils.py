"""Shared utilities for normalizing raw cell values from POS exports.

This module provides the value normalizers used by every platform parser:

- Text normalization: strip invisible characters, Excel float ids to text
- Amount parsing: currency symbols, thousands separators, mojibake artifacts
- Date parsing: spreadsheet serial dates, ISO-8601, DD/MM-first patterns
- Time merging: exports that split the date and the time into two columns

Examples:
    >>> from pos_ingest.etl.cleaning_utils import parse_amount, parse_datetime
    >>> parse_amount("£1,234.56")
    Decimal('1234.56')
    >>> parse_datetime("25/12/2024 14:30")
    datetime.datetime(2024, 12, 25, 14, 30)
    >>> parse_datetime(1)
    datetime.datetime(1899, 12, 31, 0, 0)
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Unicode characters that should be stripped from text
NBSP = "\u00a0"  # Non-breaking space
NNBSP = "\u202f"  # Narrow non-breaking space
ZW = "".join(chr(c) for c in (0x200B, 0x200C, 0x200D, 0xFEFF))  # Zero-width characters

# U+FFFD replaces a currency symbol decoded with the wrong charset;
# "Â" is what a UTF-8 "£" looks like when read as latin-1 ("Â£").
MOJIBAKE = "\ufffd\u00c2"

# Whitespace, currency symbols, thousands separators and mojibake
_AMOUNT_STRIP_RE = re.compile(r"[\s£$€,%s%s]" % (re.escape(MOJIBAKE), re.escape(ZW)))

# Spreadsheet day zero (1900 date system, with the Lotus leap-year bug folded in)
EXCEL_EPOCH = datetime(1899, 12, 30)
# 9999-12-31 in the 1900 date system
MAX_SERIAL = 2958465

_SERIAL_RE = re.compile(r"^\d+(?:\.\d+)?$")
_MONTH_NAME_RE = re.compile(r"[A-Za-z]{3,}")

# Optional " HH:MM[:SS][ AM|PM]" tail shared by the explicit date patterns
_TIME_TAIL = r"(?:[\sT]+(\d{1,2}):(\d{2})(?::(\d{2}))?(?:\s*([AaPp][Mm]))?)?"
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?(?:\s*([AaPp][Mm]))?$")

# (regex, (year, month, day) group indexes), tried in order. DD/MM is tried
# before the US MM/DD form, which only accepts a bare date.
DATE_PATTERNS = [
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})" + _TIME_TAIL + "$"), (3, 2, 1)),
    (re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})" + _TIME_TAIL + "$"), (1, 2, 3)),
    (re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})" + _TIME_TAIL + "$"), (3, 2, 1)),
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"), (3, 1, 2)),
]


def is_blank(x: Any) -> bool:
    """True for None, NaN/NaT/NA and whitespace-only strings."""
    if x is None:
        return True
    if isinstance(x, str):
        return strip_invisibles(x) == ""
    try:
        return bool(pd.isna(x))
    except (TypeError, ValueError):
        return False


def strip_invisibles(x: Any) -> Optional[str]:
    """Remove invisible and problematic whitespace characters from text.

    Strips carriage returns, tabs, non-breaking spaces and zero-width
    characters, then collapses runs of whitespace.

    Args:
        x: Value to clean (string, number, or None).

    Returns:
        Cleaned string or None if input is None/NaN.

    Examples:
        >>> strip_invisibles("  Hello World  ")
        'Hello World'
    """
    if x is None or (isinstance(x, float) and pd.isna(x)):
        return None
    s = str(x)
    s = s.replace("\r", "").replace("\t", " ").replace(NBSP, " ").replace(NNBSP, " ")
    s = re.sub(r"[%s]" % re.escape(ZW), "", s)  # zero-width
    s = re.sub(r"\s+", " ", s).strip()
    return s


def to_text(x: Any) -> Optional[str]:
    """Render a cell as clean text, or None when blank.

    Spreadsheet readers return integer-looking ids as floats, so 1001.0
    becomes "1001".

    Examples:
        >>> to_text(1001.0)
        '1001'
        >>> to_text("  INV-7 ")
        'INV-7'
    """
    if is_blank(x):
        return None
    if isinstance(x, bool):
        return str(x)
    if isinstance(x, (float, np.floating)) and math.isfinite(float(x)) and float(x).is_integer():
        return str(int(x))
    if isinstance(x, (int, np.integer)):
        return str(int(x))
    if isinstance(x, datetime):
        return x.isoformat()
    return strip_invisibles(x) or None


def parse_amount(x: Any) -> Optional[Decimal]:
    """Parse a currency value into an exact Decimal.

    Strips whitespace, the symbols £ $ € and commas, plus encoding
    artifacts left where a currency symbol was corrupted.

    Args:
        x: Raw cell value (string, number, or None).

    Returns:
        Parsed Decimal, or None if the value is blank, unparseable,
        NaN or infinite.

    Examples:
        >>> parse_amount("£1,234.56")
        Decimal('1234.56')
        >>> parse_amount("�12.50")
        Decimal('12.50')
        >>> parse_amount("n/a") is None
        True
    """
    if is_blank(x) or isinstance(x, bool):
        return None
    if isinstance(x, Decimal):
        return x if x.is_finite() else None
    if isinstance(x, (int, np.integer)):
        return Decimal(int(x))
    if isinstance(x, (float, np.floating)):
        f = float(x)
        if not math.isfinite(f):
            return None
        return Decimal(repr(f))

    s = _AMOUNT_STRIP_RE.sub("", str(x))
    if not s:
        return None
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _naive(dt: datetime) -> datetime:
    """Drop tzinfo, converting aware values to UTC first."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _hour_24(hour: int, meridiem: Optional[str]) -> int:
    if not meridiem:
        return hour
    pm = meridiem.lower() == "pm"
    if hour == 12:
        return 12 if pm else 0
    return hour + 12 if pm else hour


def from_serial(value: float) -> Optional[datetime]:
    """Convert a spreadsheet serial date (fraction = time of day).

    Examples:
        >>> from_serial(1)
        datetime.datetime(1899, 12, 31, 0, 0)
    """
    if not math.isfinite(value) or value < 0 or value > MAX_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(seconds=round(value * 86400))


def parse_datetime(x: Any) -> Optional[datetime]:
    """Parse heterogeneous date/time representations.

    Tried in order, first match wins:
    1. datetime / Timestamp / date objects (spreadsheet readers)
    2. Numbers (and digit-only strings): spreadsheet serial dates,
       counted from 1899-12-30
    3. ISO-8601
    4. Explicit patterns: DD/MM/YYYY[ HH:MM[:SS]], YYYY-MM-DD[ HH:MM[:SS]],
       DD-MM-YYYY[ HH:MM[:SS]], then US MM/DD/YYYY (date only)
    5. Text with a month name ("25 Dec 2024"), day first

    Args:
        x: Raw cell value.

    Returns:
        Naive datetime, or None if nothing matched.

    Examples:
        >>> parse_datetime("2024-12-25 09:05:30")
        datetime.datetime(2024, 12, 25, 9, 5, 30)
        >>> parse_datetime("12/25/2024")
        datetime.datetime(2024, 12, 25, 0, 0)
    """
    if is_blank(x) or isinstance(x, bool):
        return None
    if isinstance(x, pd.Timestamp):
        return _naive(x.to_pydatetime())
    if isinstance(x, datetime):
        return _naive(x)
    if isinstance(x, date):
        return datetime.combine(x, time())
    if isinstance(x, np.datetime64):
        return _naive(pd.Timestamp(x).to_pydatetime())
    if isinstance(x, (int, float, np.integer, np.floating)):
        return from_serial(float(x))

    s = strip_invisibles(x) or ""
    if _SERIAL_RE.match(s):
        return from_serial(float(s))

    try:
        return _naive(datetime.fromisoformat(s))
    except ValueError:
        pass

    for regex, (yi, mi, di) in DATE_PATTERNS:
        m = regex.match(s)
        if not m:
            continue
        groups = m.groups()
        hour = minute = second = 0
        meridiem = None
        if len(groups) > 3 and groups[3] is not None:
            hour, minute = int(groups[3]), int(groups[4])
            second = int(groups[5]) if groups[5] else 0
            meridiem = groups[6]
        try:
            return datetime(
                int(m.group(yi)),
                int(m.group(mi)),
                int(m.group(di)),
                _hour_24(hour, meridiem),
                minute,
                second,
            )
        except ValueError:
            continue

    if _MONTH_NAME_RE.search(s):
        ts = pd.to_datetime(s, dayfirst=True, errors="coerce")
        if not pd.isna(ts):
            return _naive(ts.to_pydatetime())

    return None


def resolve_datetime(x: Any, fallback: str = "now") -> Optional[datetime]:
    """Parse a date, applying the configured fallback when parsing fails.

    Args:
        x: Raw cell value.
        fallback: "now" returns the current wall-clock time (lossy);
            "reject" returns None so the caller can skip the row.

    Returns:
        Parsed or fallback datetime, or None under the "reject" fallback.
    """
    parsed = parse_datetime(x)
    if parsed is not None:
        return parsed
    logger.debug("Could not parse date: %r (fallback=%s)", x, fallback)
    if fallback == "now":
        return datetime.now().replace(microsecond=0)
    return None


def parse_time(x: Any) -> Optional[time]:
    """Parse a time-of-day cell: time/datetime objects, HH:MM[:SS], or a day fraction."""
    if is_blank(x) or isinstance(x, bool):
        return None
    if isinstance(x, datetime):
        return x.time()
    if isinstance(x, time):
        return x
    if isinstance(x, (int, float, np.integer, np.floating)):
        f = float(x)
        if not (0 <= f < 1):
            return None
        secs = round(f * 86400) % 86400
        return time(secs // 3600, (secs % 3600) // 60, secs % 60)
    m = _TIME_RE.match(strip_invisibles(x) or "")
    if not m:
        return None
    hour = _hour_24(int(m.group(1)), m.group(4))
    try:
        return time(hour, int(m.group(2)), int(m.group(3) or 0))
    except ValueError:
        return None


def apply_time(dt: datetime, time_value: Any) -> datetime:
    """Merge a separate time column into a date that carries no time part."""
    if dt.time() != time():
        return dt
    t = parse_time(time_value)
    if t is None:
        return dt
    return dt.replace(hour=t.hour, minute=t.minute, second=t.second)


def parse_quantity(x: Any, default: int = 1) -> int:
    """Parse a positive integer quantity, falling back to default.

    Examples:
        >>> parse_quantity("2")
        2
        >>> parse_quantity(None)
        1
    """
    if is_blank(x) or isinstance(x, bool):
        return default
    try:
        qty = int(round(float(strip_invisibles(x) or "")))
    except (TypeError, ValueError, OverflowError):
        return default
    return qty if qty > 0 else default
