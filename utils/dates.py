"""Utility helpers for working with date-like values."""

from __future__ import annotations

import re
from datetime import date as date_cls
from datetime import datetime, timezone
from typing import Optional

import pandas as pd

_DATE_PATTERNS = {
    "ymd": re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$"),
    "dmy": re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}$"),
    "mdy": re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"),
}


def _is_missing_value(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _parse_date_string(value: str) -> Optional[datetime]:
    text = value.strip()
    if not text:
        return None
    try:
        if _DATE_PATTERNS["ymd"].match(text):
            return datetime.strptime(text, "%Y-%m-%d")
        if _DATE_PATTERNS["dmy"].match(text):
            return datetime.strptime(text, "%d.%m.%Y")
        if _DATE_PATTERNS["mdy"].match(text):
            return datetime.strptime(text, "%m/%d/%Y")
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass

    # Last resort: pandas' general-purpose parser ("June 1, 2024", RFC dates...)
    try:
        ts = pd.to_datetime(text, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def parse_date(value: object) -> Optional[datetime]:
    """
    Best-effort coercion of ``value`` into a naive UTC ``datetime``.

    Accepts datetimes, dates, pandas ``Timestamp`` values and strings in ISO,
    ``MM/DD/YYYY`` or ``DD.MM.YYYY`` form. Anything unparsable returns ``None``
    so callers can treat it as "not provided".
    """

    if _is_missing_value(value):
        return None

    if isinstance(value, pd.Timestamp):
        return _to_naive_utc(value.to_pydatetime())

    if isinstance(value, datetime):
        return _to_naive_utc(value)

    if isinstance(value, date_cls):
        return datetime(value.year, value.month, value.day)

    if isinstance(value, str):
        parsed = _parse_date_string(value)
        return _to_naive_utc(parsed) if parsed else None

    return None


def date_to_iso(value: object) -> str:
    """Render ``YYYY-MM-DD``; missing or invalid values render as ``""``."""

    dt = parse_date(value)
    return dt.strftime("%Y-%m-%d") if dt else ""


def format_us_date(value: object) -> str:
    """Render ``MM/DD/YYYY`` (the letter template's date convention)."""

    dt = parse_date(value)
    return dt.strftime("%m/%d/%Y") if dt else ""


def day_of(value: Optional[datetime]) -> Optional[date_cls]:
    """Truncate to the calendar day for invariant comparisons."""

    return value.date() if isinstance(value, datetime) else None


__all__ = ["parse_date", "date_to_iso", "format_us_date", "day_of"]
