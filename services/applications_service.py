# services/applications_service.py
"""
Application lifecycle outside the bulk import: direct submission, listing,
edits, deletion and letter generation.

``actor`` is always the authenticated :class:`User`; ownership and admin
rules are enforced here so every entry point shares them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from domain.models.application import (
    ADMIN_ONLY_FIELDS,
    MUTABLE_FIELDS,
    Application,
    ApplicationStatus,
)
from domain.models.meeting import Meeting
from domain.models.user import User
from middleware.errors import (
    InvalidStatusError,
    PermissionDeniedError,
    RecordNotFoundError,
    ValidationError,
    describe_validation_error,
)
from repositories.application_repository import ApplicationRepository
from repositories.meeting_repository import MeetingRepository
from services.pdf_service import RenderedPdf, render_visa_letter
from utils.helpers import _as_str_or_empty

logger = logging.getLogger(__name__)

REQUIRED_SUBMISSION_FIELDS = (
    "meeting_id",
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
    "city",
    "state",
    "postal_code",
    "country",
    "phone",
)

Renderer = Callable[[Application, Optional[Meeting]], RenderedPdf]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _validated(build: Callable[[], Application]) -> Application:
    try:
        return build()
    except PydanticValidationError as exc:
        raise ValidationError(describe_validation_error(exc)) from exc


def _require_meeting(meeting_repo: MeetingRepository, meeting_id: Any) -> Meeting:
    meeting = meeting_repo.find_by_id(_as_str_or_empty(meeting_id))
    if meeting is None:
        raise RecordNotFoundError("Meeting not found", details={"meeting_id": meeting_id})
    return meeting


def _get_for_actor(repo: ApplicationRepository, application_id: str, actor: User) -> Application:
    application = repo.find_by_id(application_id)
    if application is None:
        raise RecordNotFoundError("Application not found", details={"application_id": application_id})
    if not actor.is_admin and application.user_id != actor.id:
        raise PermissionDeniedError("You do not have access to this application")
    return application


def submit_application(
    data: Dict[str, Any],
    actor: User,
    *,
    application_repo: Optional[ApplicationRepository] = None,
    meeting_repo: Optional[MeetingRepository] = None,
) -> Application:
    """Create an application for ``actor``; always starts Pending and not imported."""

    application_repo = application_repo or ApplicationRepository()
    meeting_repo = meeting_repo or MeetingRepository()

    missing = [name for name in REQUIRED_SUBMISSION_FIELDS if not _as_str_or_empty(data.get(name))]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}", details={"missing": missing}
        )

    meeting = _require_meeting(meeting_repo, data["meeting_id"])
    fields = {k: v for k, v in data.items() if k in MUTABLE_FIELDS and k not in ADMIN_ONLY_FIELDS}
    fields["meeting_id"] = meeting.id

    application = _validated(
        lambda: Application(
            **fields,
            user_id=actor.id,
            status=ApplicationStatus.pending,
            is_imported=False,
            last_updated_by=actor.id,
        )
    )
    created = application_repo.create(application)
    logger.info("Application %s submitted by %s", created.id, actor.email)
    return created


def list_applications(
    actor: User,
    *,
    include_all: bool = False,
    application_repo: Optional[ApplicationRepository] = None,
) -> List[Application]:
    """Own applications newest first; administrators may ask for every record."""
    application_repo = application_repo or ApplicationRepository()
    if include_all:
        if not actor.is_admin:
            raise PermissionDeniedError("Administrator access required")
        return application_repo.find_all()
    return application_repo.find_by_user(actor.id)


def get_application(
    application_id: str, actor: User, *, application_repo: Optional[ApplicationRepository] = None
) -> Application:
    application_repo = application_repo or ApplicationRepository()
    return _get_for_actor(application_repo, application_id, actor)


def update_application(
    application_id: str,
    data: Dict[str, Any],
    actor: User,
    *,
    application_repo: Optional[ApplicationRepository] = None,
    meeting_repo: Optional[MeetingRepository] = None,
) -> Application:
    """
    Merge ``data`` into a stored application and re-validate the result.

    Owners may edit while the application is Pending; administrators may edit
    at any time and are the only ones allowed to touch administrative fields.
    Unknown keys are ignored.
    """

    application_repo = application_repo or ApplicationRepository()
    meeting_repo = meeting_repo or MeetingRepository()
    existing = _get_for_actor(application_repo, application_id, actor)

    if not actor.is_admin:
        if existing.status != ApplicationStatus.pending:
            raise PermissionDeniedError("Only pending applications can be edited")
        forbidden = sorted(k for k in data if k in ADMIN_ONLY_FIELDS)
        if forbidden:
            raise PermissionDeniedError(
                f"Only administrators may change: {', '.join(forbidden)}",
                details={"fields": forbidden},
            )

    allowed = set(MUTABLE_FIELDS) | (set(ADMIN_ONLY_FIELDS) if actor.is_admin else set())
    updates = {k: v for k, v in data.items() if k in allowed}
    if "meeting_id" in updates:
        updates["meeting_id"] = _require_meeting(meeting_repo, updates["meeting_id"]).id
    updates.update(last_updated_by=actor.id, updated_at=_utcnow())

    updated = _validated(lambda: existing.with_updates(updates))
    application_repo.replace(updated)
    return updated


def delete_application(
    application_id: str, actor: User, *, application_repo: Optional[ApplicationRepository] = None
) -> None:
    """Hard delete; administrators only."""
    if not actor.is_admin:
        raise PermissionDeniedError("Only administrators can delete applications")
    application_repo = application_repo or ApplicationRepository()
    application = _get_for_actor(application_repo, application_id, actor)
    application_repo.delete(application.id)
    logger.info("Application %s deleted by %s", application.id, actor.email)


def generate_letter(
    application_id: str,
    actor: User,
    *,
    application_repo: Optional[ApplicationRepository] = None,
    meeting_repo: Optional[MeetingRepository] = None,
    renderer: Optional[Renderer] = None,
) -> RenderedPdf:
    """
    Render the visa letter for an Approved application and record that it was
    generated. The caller owns the returned file and must delete it.
    """

    application_repo = application_repo or ApplicationRepository()
    meeting_repo = meeting_repo or MeetingRepository()
    renderer = renderer or render_visa_letter

    application = _get_for_actor(application_repo, application_id, actor)
    if application.status != ApplicationStatus.approved:
        raise InvalidStatusError(
            "Letter can only be generated for approved applications",
            details={"status": application.status.value},
        )

    meeting = meeting_repo.find_by_id(application.meeting_id)
    if meeting is None:
        logger.warning("Meeting %s missing for application %s", application.meeting_id, application.id)

    rendered = renderer(application, meeting)
    application_repo.update(application.id, {"pdf_generated": True, "pdf_generated_at": _utcnow()})
    logger.info("Letter generated for application %s (%d bytes)", application.id, rendered.size)
    return rendered
