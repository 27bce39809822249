"""Excel "treat as text" escaping for numeric-looking CSV values.

Spreadsheets silently turn values such as ``0012345`` or ``+15551234567`` into
numbers (dropping leading zeros, switching to scientific notation). Export
wraps those columns as ``="value"``; import unwraps them again. The two helpers
must stay inverse to each other.
"""

from __future__ import annotations

import re
from typing import Optional

# Columns whose content is digits/punctuation and must survive a spreadsheet.
TEXT_COLUMNS = ("passportNumber", "phone", "fax", "hotelConfirmation")

_EXCEL_TEXT_RE = re.compile(r'^="(.*)"$', re.DOTALL)


def clean_value(value: object) -> Optional[str]:
    """Strip surrounding whitespace and undo an ``="..."`` escape."""

    if value is None:
        return None
    text = str(value).strip()
    match = _EXCEL_TEXT_RE.match(text)
    if match:
        return match.group(1)
    return text


def format_as_text(value: object) -> str:
    """Wrap a non-empty value as ``="value"``; empty stays empty."""

    text = "" if value is None else str(value)
    if not text:
        return ""
    return f'="{text}"'
