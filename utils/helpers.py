from __future__ import annotations

import re
from typing import Optional

_TRUE_VALUES = {"true", "1", "yes", "on"}
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def _as_str_or_empty(obj: object) -> str:
    """Fast, null-safe conversion to stripped string."""

    return str(obj).strip() if obj is not None else ""


def empty_to_none(value: object) -> Optional[str]:
    """Treat None, empty and whitespace-only values as None."""

    text = _as_str_or_empty(value)
    return text or None


def parse_bool(value: object) -> bool:
    """
    CSV flag semantics: ``"true"`` (also ``1``/``yes``/``on``) is True,
    anything else, including absence, is False.
    """

    if isinstance(value, bool):
        return value
    return _as_str_or_empty(value).lower() in _TRUE_VALUES


def slug_for_filename(name: object) -> str:
    """Replace every non-alphanumeric character with ``_`` and lower-case."""

    return _NON_ALNUM_RE.sub("_", _as_str_or_empty(name)).lower()


def join_present(parts, separator: str) -> str:
    """Join the non-empty, stripped ``parts`` with ``separator``."""

    return separator.join(p for p in (_as_str_or_empty(x) for x in parts) if p)
