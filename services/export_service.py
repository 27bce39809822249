"""CSV export of a meeting's applications (the inverse of the importer)."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from domain.models.application import Application
from domain.models.import_row import IMPORT_COLUMNS
from domain.models.meeting import Meeting
from middleware.errors import RecordNotFoundError
from repositories.application_repository import ApplicationRepository
from repositories.meeting_repository import MeetingRepository
from utils.dates import date_to_iso
from utils.excel_text import TEXT_COLUMNS, format_as_text
from utils.helpers import slug_for_filename

logger = logging.getLogger(__name__)

CSV_MIMETYPE = "text/csv"


@dataclass(frozen=True)
class CsvExport:
    filename: str
    content: bytes
    row_count: int


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


def _enum_text(value: Any) -> str:
    return getattr(value, "value", value) or ""


# Column -> extractor(application, meeting). Order comes from IMPORT_COLUMNS.
_COLUMN_EXTRACTORS: Dict[str, Callable[[Application, Meeting], Any]] = {
    "applicationDate": lambda a, m: date_to_iso(a.entry_date or a.created_at),
    "email": lambda a, m: a.email,
    "lastName": lambda a, m: a.last_name,
    "firstName": lambda a, m: a.first_name,
    "birthdate": lambda a, m: date_to_iso(a.birthdate),
    "passportNumber": lambda a, m: a.passport_number,
    "passportIssuingCountry": lambda a, m: a.passport_issuing_country,
    "passportExpirationDate": lambda a, m: date_to_iso(a.passport_expiration_date),
    "dateOfArrival": lambda a, m: date_to_iso(a.date_of_arrival),
    "dateOfDeparture": lambda a, m: date_to_iso(a.date_of_departure),
    "gender": lambda a, m: _enum_text(a.gender),
    "companyName": lambda a, m: a.company_name,
    "position": lambda a, m: a.position,
    "companyMailingAddress1": lambda a, m: a.company_mailing_address1,
    "companyMailingAddress2": lambda a, m: a.company_mailing_address2,
    "city": lambda a, m: a.city,
    "state": lambda a, m: a.state,
    "postalCode": lambda a, m: a.postal_code,
    "country": lambda a, m: a.country,
    "phone": lambda a, m: a.phone,
    "fax": lambda a, m: a.fax,
    "hotelName": lambda a, m: a.hotel_name,
    "hotelConfirmation": lambda a, m: a.hotel_confirmation,
    "additionalInformation": lambda a, m: a.additional_information,
    "meetingName": lambda a, m: m.name,
    "status": lambda a, m: _enum_text(a.status),
    "letterEmailed": lambda a, m: _bool_text(a.letter_emailed),
    "letterEmailedDate": lambda a, m: date_to_iso(a.letter_emailed_date),
    "hardCopyMailed": lambda a, m: _bool_text(a.hard_copy_mailed),
    "hardCopyMailedDate": lambda a, m: date_to_iso(a.hard_copy_mailed_date),
    "addressToMailHardCopy": lambda a, m: a.address_to_mail_hard_copy,
}


def application_to_row(application: Application, meeting: Meeting) -> Dict[str, str]:
    """Flatten one application into the CSV column contract."""
    row: Dict[str, str] = {}
    for column in IMPORT_COLUMNS:
        value = _COLUMN_EXTRACTORS[column](application, meeting)
        text = "" if value is None else str(value)
        if column in TEXT_COLUMNS:
            text = format_as_text(text)
        row[column] = text
    return row


def render_csv(rows: List[Dict[str, str]]) -> bytes:
    """Serialize rows in contract column order with minimal quoting."""
    df = pd.DataFrame(rows, columns=list(IMPORT_COLUMNS))
    text = df.to_csv(index=False, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    return text.encode("utf-8")


def export_filename(meeting: Meeting, today: Optional[date] = None) -> str:
    today = today or datetime.now().date()
    return f"{slug_for_filename(meeting.name)}_applications_{today.isoformat()}.csv"


def export_meeting_applications(
    meeting_id: str,
    *,
    meeting_repo: Optional[MeetingRepository] = None,
    application_repo: Optional[ApplicationRepository] = None,
    today: Optional[date] = None,
) -> CsvExport:
    """Export every application of a meeting, newest first."""

    meeting_repo = meeting_repo or MeetingRepository()
    application_repo = application_repo or ApplicationRepository()

    meeting = meeting_repo.find_by_id(meeting_id)
    if meeting is None:
        raise RecordNotFoundError("Meeting not found", details={"meeting_id": meeting_id})

    applications = application_repo.find_by_meeting(meeting.id)
    if not applications:
        raise RecordNotFoundError(
            "No applications found for this meeting", details={"meeting_id": meeting_id}
        )

    rows = [application_to_row(app, meeting) for app in applications]
    logger.info("Exporting %d applications for meeting %s", len(rows), meeting.name)
    return CsvExport(
        filename=export_filename(meeting, today),
        content=render_csv(rows),
        row_count=len(rows),
    )


def import_template() -> CsvExport:
    """Header row plus one illustrative row for administrators to fill in."""

    sample = {
        "applicationDate": datetime.now().date().isoformat(),
        "email": "john@example.com",
        "lastName": "Doe",
        "firstName": "John",
        "birthdate": "1990-01-01",
        "passportNumber": format_as_text("AB123456"),
        "passportIssuingCountry": "US",
        "passportExpirationDate": "2030-01-01",
        "dateOfArrival": "2026-06-01",
        "dateOfDeparture": "2026-06-07",
        "gender": "Male",
        "companyName": "ACME Corp",
        "position": "Engineer",
        "companyMailingAddress1": "123 Main St",
        "companyMailingAddress2": "Suite 100",
        "city": "New York",
        "state": "NY",
        "postalCode": "10001",
        "country": "US",
        "phone": format_as_text("+1234567890"),
        "meetingName": "Calgary 2026",
        "status": "Pending",
        "letterEmailed": "false",
        "hardCopyMailed": "false",
    }
    row = {column: sample.get(column, "") for column in IMPORT_COLUMNS}
    return CsvExport(
        filename="application_import_template.csv",
        content=render_csv([row]),
        row_count=1,
    )
