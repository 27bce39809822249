"""Turn one raw CSV row (all strings) into a typed :class:`ImportRow`."""

from __future__ import annotations

from typing import Mapping

from pydantic import ValidationError as PydanticValidationError

from domain.models.import_row import REQUIRED_COLUMNS, ImportRow
from middleware.errors import RowValidationError, describe_validation_error
from utils.helpers import _as_str_or_empty


def missing_required_fields(row: Mapping[str, str]) -> list[str]:
    """Required column names that are absent or blank, in contract order."""
    return [name for name in REQUIRED_COLUMNS if not row.get(name)]


def normalize_row(raw: Mapping[str, object]) -> ImportRow:
    """
    Validate and convert a CSV row.

    Raises :class:`RowValidationError` when required columns are missing, when
    ``applicationDate`` cannot be parsed, or when a value is otherwise unusable.
    Other unparsable dates quietly become ``None``.
    """

    row = {
        _as_str_or_empty(key): _as_str_or_empty(value)
        for key, value in raw.items()
        if key is not None
    }

    missing = missing_required_fields(row)
    if missing:
        raise RowValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )

    try:
        return ImportRow.model_validate(row)
    except PydanticValidationError as exc:
        raise RowValidationError(describe_validation_error(exc)) from exc
