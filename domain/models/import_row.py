from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from utils.dates import parse_date
from utils.excel_text import clean_value
from utils.helpers import empty_to_none, parse_bool

# Column contract shared by import, export and the downloadable template.
IMPORT_COLUMNS = (
    "applicationDate",
    "email",
    "lastName",
    "firstName",
    "birthdate",
    "passportNumber",
    "passportIssuingCountry",
    "passportExpirationDate",
    "dateOfArrival",
    "dateOfDeparture",
    "gender",
    "companyName",
    "position",
    "companyMailingAddress1",
    "companyMailingAddress2",
    "city",
    "state",
    "postalCode",
    "country",
    "phone",
    "fax",
    "hotelName",
    "hotelConfirmation",
    "additionalInformation",
    "meetingName",
    "status",
    "letterEmailed",
    "letterEmailedDate",
    "hardCopyMailed",
    "hardCopyMailedDate",
    "addressToMailHardCopy",
)

REQUIRED_COLUMNS = (
    "email",
    "lastName",
    "firstName",
    "birthdate",
    "passportNumber",
    "passportIssuingCountry",
    "passportExpirationDate",
    "dateOfArrival",
    "dateOfDeparture",
    "gender",
    "companyName",
    "position",
    "companyMailingAddress1",
    "city",
    "state",
    "postalCode",
    "country",
    "phone",
    "meetingName",
    "applicationDate",
)

LenientDate = Annotated[Optional[datetime], BeforeValidator(parse_date)]
Text = Annotated[str, BeforeValidator(lambda v: "" if v is None else str(v).strip())]
OptionalText = Annotated[Optional[str], BeforeValidator(empty_to_none)]
ExcelText = Annotated[str, BeforeValidator(lambda v: clean_value(v) or "")]
Flag = Annotated[bool, BeforeValidator(parse_bool)]


class ImportRow(BaseModel):
    """
    One CSV row after normalization. Required columns are plain ``str`` and
    must be non-empty; optional columns default to empty/None/False.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    application_date: datetime = Field(..., alias="applicationDate")
    email: Text
    last_name: Text = Field(..., alias="lastName")
    first_name: Text = Field(..., alias="firstName")
    birthdate: LenientDate = None
    passport_number: ExcelText = Field(..., alias="passportNumber")
    passport_issuing_country: Text = Field(..., alias="passportIssuingCountry")
    passport_expiration_date: LenientDate = Field(default=None, alias="passportExpirationDate")
    date_of_arrival: LenientDate = Field(default=None, alias="dateOfArrival")
    date_of_departure: LenientDate = Field(default=None, alias="dateOfDeparture")
    gender: Text
    company_name: Text = Field(..., alias="companyName")
    position: Text
    company_mailing_address1: Text = Field(..., alias="companyMailingAddress1")
    company_mailing_address2: Text = Field(default="", alias="companyMailingAddress2")
    city: Text
    state: Text
    postal_code: Text = Field(..., alias="postalCode")
    country: Text
    phone: ExcelText
    fax: ExcelText = ""
    hotel_name: Text = Field(default="", alias="hotelName")
    hotel_confirmation: ExcelText = Field(default="", alias="hotelConfirmation")
    additional_information: Text = Field(default="", alias="additionalInformation")
    meeting_name: Text = Field(..., alias="meetingName")
    status: OptionalText = None
    letter_emailed: Flag = Field(default=False, alias="letterEmailed")
    letter_emailed_date: LenientDate = Field(default=None, alias="letterEmailedDate")
    hard_copy_mailed: Flag = Field(default=False, alias="hardCopyMailed")
    hard_copy_mailed_date: LenientDate = Field(default=None, alias="hardCopyMailedDate")
    address_to_mail_hard_copy: Text = Field(default="", alias="addressToMailHardCopy")

    @field_validator("application_date", mode="before")
    @classmethod
    def _strict_application_date(cls, v):
        parsed = parse_date(v)
        if parsed is None:
            raise ValueError(
                f"Invalid applicationDate format. Expected YYYY-MM-DD but got: {v}"
            )
        return parsed

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or "Unknown"

    def application_fields(self) -> dict:
        """Fields copied onto the stored application record."""
        return {
            "entry_date": self.application_date,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "birthdate": self.birthdate,
            "gender": self.gender,
            "passport_number": self.passport_number,
            "passport_issuing_country": self.passport_issuing_country,
            "passport_expiration_date": self.passport_expiration_date,
            "date_of_arrival": self.date_of_arrival,
            "date_of_departure": self.date_of_departure,
            "company_name": self.company_name,
            "position": self.position,
            "company_mailing_address1": self.company_mailing_address1,
            "company_mailing_address2": self.company_mailing_address2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "phone": self.phone,
            "fax": self.fax,
            "hotel_name": self.hotel_name,
            "hotel_confirmation": self.hotel_confirmation,
            "additional_information": self.additional_information,
            "letter_emailed": self.letter_emailed,
            "letter_emailed_date": self.letter_emailed_date,
            "hard_copy_mailed": self.hard_copy_mailed,
            "hard_copy_mailed_date": self.hard_copy_mailed_date,
            "address_to_mail_hard_copy": self.address_to_mail_hard_copy,
        }
