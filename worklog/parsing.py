from __future__ import annotations

import logging
import math
import numbers
import re
import warnings
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Mapping, Optional

import pandas as pd

from worklog.config import NumericTimeUnit

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_COLON_DURATION_RE = re.compile(r"^\d+:\d{1,2}$")
_HM_DURATION_RE = re.compile(r"(?:(\d+(?:\.\d+)?)\s*h)?\s*(?:(\d+)\s*m)?")
_TICKET_FRAGMENT_RE = re.compile(r"#!/(\d+)$")


def normalize_header_key(key: object) -> object:
    """Collapse whitespace runs in a column name: ``"Time  Spent "`` -> ``"Time Spent"``."""
    if not isinstance(key, str):
        return key
    return _WHITESPACE_RE.sub(" ", key).strip()


def normalize_row(row: Mapping[object, object]) -> Dict[object, object]:
    return {normalize_header_key(k): v for k, v in row.items()}


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return True
    return False


def cell_text(value: object) -> str:
    """Trimmed text of a cell; blanks (None/NaN/NaT) become ``""``."""
    if is_blank(value):
        return ""
    return str(value).strip()


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def _as_naive(ts: pd.Timestamp) -> datetime:
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.to_pydatetime()


def parse_date_value(value: object) -> Optional[datetime]:
    """Best-effort date parsing.

    Typed dates are returned as naive datetimes. Anything else is handed to
    ``pandas.to_datetime`` (dateutil, month-first for ambiguous ``D/D/YYYY``
    text). Unparseable input yields ``None``, never an error.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, pd.Timestamp):
        return _as_naive(value)
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return _as_naive(parsed)


def _fallback_minutes(productive_hours: float) -> int:
    if not productive_hours:
        return 0
    return int(round_half_up(productive_hours * 60) or 0)


def _numeric_minutes(number: float, numeric_time_as: NumericTimeUnit) -> int:
    minutes = number * 60 if numeric_time_as == NumericTimeUnit.HOURS else number
    return int(round_half_up(minutes) or 0)


def _parse_minutes(value: object, productive_hours: float, numeric_time_as: NumericTimeUnit) -> int:
    if is_blank(value):
        return _fallback_minutes(productive_hours)

    # openpyxl hands back time-formatted cells as time/timedelta objects
    if isinstance(value, time):
        return value.hour * 60 + value.minute + int(round_half_up(value.second / 60) or 0)
    if isinstance(value, timedelta):
        return int(round_half_up(value.total_seconds() / 60) or 0)

    if isinstance(value, numbers.Number) and not isinstance(value, bool):
        number = float(value)
        if not math.isfinite(number):
            return _fallback_minutes(productive_hours)
        return _numeric_minutes(number, numeric_time_as)

    text = str(value).strip().lower()
    if _COLON_DURATION_RE.match(text):
        hours, minutes = (int(part) for part in text.split(":"))
        return hours * 60 + minutes

    matched = _HM_DURATION_RE.match(text)
    if matched and (matched.group(1) or matched.group(2)):
        hours = float(matched.group(1)) if matched.group(1) else 0.0
        minutes = int(matched.group(2)) if matched.group(2) else 0
        return int(round_half_up(hours * 60 + minutes) or 0)

    try:
        number = float(text)
    except ValueError:
        number = math.nan
    if math.isfinite(number):
        return _numeric_minutes(number, numeric_time_as)

    logger.debug("Unparseable time spent %r, falling back to productive hours %s", value, productive_hours)
    return _fallback_minutes(productive_hours)


def parse_time_spent(
    value: object,
    productive_hours: float = 0.0,
    *,
    numeric_time_as: NumericTimeUnit = NumericTimeUnit.HOURS,
) -> int:
    """Convert a raw "Time Spent" cell to whole minutes.

    Tried in order: empty, numeric (hours or minutes per ``numeric_time_as``),
    ``H:MM``, ``<n>h <n>m``, bare number text. Empty or unparseable values
    fall back to ``productive_hours * 60``. The result is never negative.
    """
    return max(0, _parse_minutes(value, productive_hours, numeric_time_as))


def extract_ticket_number(value: object) -> object:
    """``"https://host/pm/tickets#!/14802"`` -> ``"#14802"``; anything else is returned as-is."""
    if not value or not isinstance(value, str):
        return value
    match = _TICKET_FRAGMENT_RE.search(value)
    if match:
        return f"#{match.group(1)}"
    return value


def parse_productive_hours(value: object) -> float:
    if is_blank(value) or isinstance(value, bool):
        return 0.0
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(hours) or hours < 0:
        return 0.0
    return hours


def format_minutes(minutes: object) -> str:
    total = int(minutes or 0)
    return f"{total // 60}h {total % 60}m"
