from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated, Any, List, Optional

from bson import ObjectId
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from utils.dates import day_of, parse_date
from utils.excel_text import clean_value

DateField = Annotated[Optional[datetime], BeforeValidator(parse_date)]
TextField = Annotated[str, BeforeValidator(lambda v: "" if v is None else str(v).strip())]
ExcelTextField = Annotated[str, BeforeValidator(lambda v: clean_value(v) or "")]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Gender(StrEnum):
    male = "Male"
    female = "Female"
    other = "Other"

    @classmethod
    def coerce(cls, value: object) -> Optional["Gender"]:
        text = str(value or "").strip().lower()
        if not text:
            return None
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Invalid gender: {value}")


class ApplicationStatus(StrEnum):
    pending = "Pending"
    approved = "Approved"
    rejected = "Rejected"

    @classmethod
    def from_legacy(cls, value: object) -> "ApplicationStatus":
        """Map stored/imported status text (any case, legacy synonyms) to the enum."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        try:
            return LEGACY_STATUS_MAP[text]
        except KeyError:
            raise ValueError(f"Unknown application status: {value}") from None

    @classmethod
    def is_approved(cls, value: object) -> bool:
        """True when ``value`` names the Approved state, including legacy ``Complete``."""
        return LEGACY_STATUS_MAP.get(str(value or "").strip().lower()) is cls.approved


LEGACY_STATUS_MAP: dict[str, ApplicationStatus] = {
    "pending": ApplicationStatus.pending,
    "approved": ApplicationStatus.approved,
    "complete": ApplicationStatus.approved,
    "completed": ApplicationStatus.approved,
    "rejected": ApplicationStatus.rejected,
}

# Fields an import row (or an admin) may overwrite; identity, ownership and
# creation time are deliberately absent.
MUTABLE_FIELDS = (
    "meeting_id",
    "entry_date",
    "email",
    "first_name",
    "last_name",
    "birthdate",
    "gender",
    "passport_number",
    "passport_issuing_country",
    "passport_expiration_date",
    "date_of_arrival",
    "date_of_departure",
    "company_name",
    "position",
    "company_mailing_address1",
    "company_mailing_address2",
    "city",
    "state",
    "postal_code",
    "country",
    "phone",
    "fax",
    "hotel_name",
    "hotel_confirmation",
    "additional_information",
    "status",
    "letter_emailed",
    "letter_emailed_date",
    "hard_copy_mailed",
    "hard_copy_mailed_date",
    "address_to_mail_hard_copy",
)

# Fields only administrators may change through the update endpoint.
ADMIN_ONLY_FIELDS = (
    "status",
    "letter_emailed",
    "letter_emailed_date",
    "hard_copy_mailed",
    "hard_copy_mailed_date",
    "address_to_mail_hard_copy",
    "additional_documentation",
    "is_imported",
    "imported_by",
    "pdf_generated",
    "pdf_generated_at",
)


class Application(BaseModel):
    """Visa letter application as stored in the ``applications`` collection."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=False,
    )

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: Optional[str] = None
    meeting_id: str = Field(..., min_length=1)
    entry_date: DateField = Field(default_factory=_utcnow)

    # Personal
    email: TextField = ""
    first_name: TextField = ""
    last_name: TextField = ""
    birthdate: DateField = None
    gender: Optional[Gender] = None

    # Passport / travel
    passport_number: ExcelTextField = ""
    passport_issuing_country: TextField = ""
    passport_expiration_date: DateField = None
    date_of_arrival: DateField = None
    date_of_departure: DateField = None

    # Company
    company_name: TextField = ""
    position: TextField = ""
    company_mailing_address1: TextField = ""
    company_mailing_address2: TextField = ""
    city: TextField = ""
    state: TextField = ""
    postal_code: TextField = ""
    country: TextField = ""

    # Contact / hotel
    phone: ExcelTextField = ""
    fax: ExcelTextField = ""
    hotel_name: TextField = ""
    hotel_confirmation: ExcelTextField = ""
    additional_information: TextField = ""

    # Administrative
    status: ApplicationStatus = ApplicationStatus.pending
    letter_emailed: bool = False
    letter_emailed_date: DateField = None
    hard_copy_mailed: bool = False
    hard_copy_mailed_date: DateField = None
    address_to_mail_hard_copy: TextField = ""
    additional_documentation: List[str] = Field(default_factory=list)
    is_imported: bool = False
    imported_by: Optional[str] = None
    last_updated_by: Optional[str] = None
    pdf_generated: bool = False
    pdf_generated_at: DateField = None

    created_at: DateField = Field(default_factory=_utcnow)
    updated_at: DateField = Field(default_factory=_utcnow)

    # ---------- Validators ----------

    @field_validator("id", "user_id", "meeting_id", "imported_by", "last_updated_by", mode="before")
    @classmethod
    def _object_id_to_str(cls, v: Any) -> Any:
        if isinstance(v, ObjectId):
            return str(v)
        return v

    @field_validator("email", mode="after")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("gender", mode="before")
    @classmethod
    def _coerce_gender(cls, v: Any) -> Optional[Gender]:
        return Gender.coerce(v)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, v: Any) -> ApplicationStatus:
        if v is None or v == "":
            return ApplicationStatus.pending
        return ApplicationStatus.from_legacy(v)

    @field_validator("additional_documentation", mode="before")
    @classmethod
    def _coerce_documents(cls, v: Any) -> List[str]:
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [v.strip()]
        return [str(item).strip() for item in v if str(item).strip()]

    @model_validator(mode="after")
    def _check_travel_dates(self) -> "Application":
        expiration = day_of(self.passport_expiration_date)
        arrival = day_of(self.date_of_arrival)
        departure = day_of(self.date_of_departure)
        if expiration and departure and expiration < departure:
            raise ValueError("Passport must be valid for the entire duration of stay")
        if arrival and departure and departure < arrival:
            raise ValueError("Departure date must be after arrival date")
        return self

    # ---------- Helpers ----------

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def with_updates(self, updates: dict[str, Any]) -> "Application":
        """Return a re-validated copy with ``updates`` merged in."""
        payload = self.model_dump(by_alias=True)
        payload.update(updates)
        return Application.model_validate(payload)

    def to_mongo(self) -> dict:
        """Serialize for Mongo; ``_id`` is omitted until assigned by the DB."""
        doc = self.model_dump(by_alias=True, mode="python")
        doc["gender"] = self.gender.value if self.gender else None
        doc["status"] = self.status.value
        _id = doc.pop("_id", None)
        if _id:
            doc["_id"] = ObjectId(_id) if ObjectId.is_valid(_id) else _id
        return doc

    @classmethod
    def from_mongo(cls, doc: dict | None) -> "Application | None":
        """Hydrate from a MongoDB document."""
        if not doc:
            return None
        return cls.model_validate(doc)

    def to_public_dict(self) -> dict:
        """JSON-safe dict for API responses."""
        return self.model_dump(mode="json")
