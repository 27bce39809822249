# services/import_service.py
"""
Bulk CSV import of visa letter applications.

Rows are processed one at a time, in file order. Each row is normalized,
its ``meetingName`` is resolved to a meeting, and the pair
(passport number, meeting) decides whether an existing application is
updated or a new one is inserted. A bad row is recorded in the summary and
never stops the batch; only an unreadable file fails the whole import.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError

from domain.models.application import Application, ApplicationStatus
from domain.models.import_row import ImportRow
from domain.models.meeting import Meeting
from middleware.errors import (
    BaseAppError,
    ImportParsingError,
    RowValidationError,
    describe_validation_error,
)
from repositories.application_repository import ApplicationRepository
from repositories.meeting_repository import MeetingRepository
from services.record_normalizer import normalize_row
from utils.helpers import _as_str_or_empty

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    """Outcome of one import batch."""

    total: int = 0
    successful: int = 0
    updated: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    updated_records: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": "Import completed",
            "total": self.total,
            "successful": self.successful,
            "updated": self.updated,
            "failed": self.failed,
            "errors": list(self.errors),
            "updatedRecords": list(self.updated_records),
        }


# ============================
# Parsing
# ============================

def parse_csv(content: bytes) -> List[Dict[str, str]]:
    """
    Parse CSV bytes into string-valued row dicts keyed by header.
    Any failure here is batch-fatal.
    """
    if not content or not content.strip():
        raise ImportParsingError("The uploaded file is empty")

    try:
        df = pd.read_csv(
            BytesIO(content),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, ValueError) as exc:
        raise ImportParsingError(f"Could not parse CSV file: {exc}") from exc

    df.columns = [str(col).strip() for col in df.columns]
    return df.to_dict(orient="records")


# ============================
# Reconciliation
# ============================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _row_display_name(raw: Mapping[str, Any]) -> str:
    first = _as_str_or_empty(raw.get("firstName"))
    last = _as_str_or_empty(raw.get("lastName"))
    return f"{first} {last}".strip() or "Unknown"


def _import_status(value: Optional[str]) -> ApplicationStatus:
    if ApplicationStatus.is_approved(value):
        return ApplicationStatus.approved
    return ApplicationStatus.pending


class _MeetingResolver:
    """Name -> meeting lookups, remembered for the duration of one batch."""

    def __init__(self, repo: MeetingRepository) -> None:
        self._repo = repo
        self._cache: Dict[str, Meeting] = {}

    def resolve(self, name: str) -> Meeting:
        if name in self._cache:
            return self._cache[name]
        meeting = self._repo.find_by_name(name)
        if meeting is None:
            raise RowValidationError(f"Meeting not found: {name}")
        self._cache[name] = meeting
        return meeting


def _updated_status(existing: Application, value: Optional[str]) -> ApplicationStatus:
    if not _as_str_or_empty(value):
        return existing.status
    return ApplicationStatus.from_legacy(value)


def _update_existing(
    existing: Application, row: ImportRow, meeting: Meeting, admin_id: str, now: datetime
) -> Application:
    updates = row.application_fields()
    updates.update(
        {
            "meeting_id": meeting.id,
            "status": _updated_status(existing, row.status),
            "is_imported": True,
            "imported_by": admin_id,
            "last_updated_by": admin_id,
            "updated_at": now,
        }
    )
    return existing.with_updates(updates)


def _build_new(row: ImportRow, meeting: Meeting, admin_id: str, now: datetime) -> Application:
    return Application(
        **row.application_fields(),
        user_id=admin_id,
        meeting_id=meeting.id,
        status=_import_status(row.status),
        is_imported=True,
        imported_by=admin_id,
        last_updated_by=admin_id,
        # Imported history keeps its real entry date.
        created_at=row.application_date,
        updated_at=now,
    )


def import_rows(
    rows: Iterable[Mapping[str, Any]],
    admin_id: str,
    *,
    meeting_repo: Optional[MeetingRepository] = None,
    application_repo: Optional[ApplicationRepository] = None,
) -> ImportSummary:
    """Reconcile parsed rows against stored applications."""

    meeting_repo = meeting_repo or MeetingRepository()
    application_repo = application_repo or ApplicationRepository()
    resolver = _MeetingResolver(meeting_repo)
    summary = ImportSummary()

    for index, raw in enumerate(rows, start=1):
        summary.total += 1
        try:
            row = normalize_row(raw)
            meeting = resolver.resolve(row.meeting_name)
            now = _utcnow()

            existing = application_repo.find_by_passport_and_meeting(
                row.passport_number, meeting.id
            )
            if existing:
                updated = _update_existing(existing, row, meeting, admin_id, now)
                application_repo.replace(updated)
                summary.updated += 1
                summary.updated_records.append(
                    {"row": index, "id": updated.id, "name": row.display_name}
                )
            else:
                created = application_repo.create(_build_new(row, meeting, admin_id, now))
                summary.successful += 1
                logger.debug("row %d inserted as %s", index, created.id)
        except PydanticValidationError as exc:
            _record_failure(summary, index, raw, describe_validation_error(exc))
        except BaseAppError as exc:
            _record_failure(summary, index, raw, exc.message)
        except (ValueError, PyMongoError) as exc:
            _record_failure(summary, index, raw, str(exc))

    logger.info(
        "Import finished: total=%d inserted=%d updated=%d failed=%d",
        summary.total,
        summary.successful,
        summary.updated,
        summary.failed,
    )
    return summary


def _record_failure(summary: ImportSummary, index: int, raw: Mapping[str, Any], message: str) -> None:
    summary.failed += 1
    summary.errors.append({"row": index, "name": _row_display_name(raw), "error": message})
    logger.warning("Import row %d skipped: %s", index, message)


def import_csv(
    content: bytes,
    admin_id: str,
    *,
    meeting_repo: Optional[MeetingRepository] = None,
    application_repo: Optional[ApplicationRepository] = None,
) -> ImportSummary:
    """Parse ``content`` and import every row on behalf of ``admin_id``."""

    rows = parse_csv(content)
    return import_rows(
        rows,
        admin_id,
        meeting_repo=meeting_repo,
        application_repo=application_repo,
    )
