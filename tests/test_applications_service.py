from datetime import datetime

import pytest

from domain.models.application import Application, ApplicationStatus
from middleware.errors import (
    InvalidStatusError,
    PermissionDeniedError,
    RecordNotFoundError,
    ValidationError,
)
from services import applications_service
from services.pdf_service import RenderedPdf


def _payload(meeting, **overrides):
    data = {
        "meeting_id": meeting.id,
        "email": "user@example.com",
        "first_name": "Ana",
        "last_name": "Kovac",
        "birthdate": "1991-03-04",
        "gender": "Female",
        "passport_number": "X123",
        "passport_issuing_country": "Croatia",
        "passport_expiration_date": "2031-01-01",
        "date_of_arrival": "2026-06-01",
        "date_of_departure": "2026-06-07",
        "company_name": "ACME",
        "position": "Analyst",
        "company_mailing_address1": "Ilica 1",
        "city": "Zagreb",
        "state": "-",
        "postal_code": "10000",
        "country": "Croatia",
        "phone": "+38511111111",
    }
    data.update(overrides)
    return data


def _store(repo, owner, meeting, status=ApplicationStatus.pending):
    return repo.create(
        Application(
            meeting_id=meeting.id,
            user_id=owner.id,
            first_name="Ana",
            last_name="Kovac",
            status=status,
        )
    )


def test_submission_is_pending_and_not_imported(regular_user, meeting, meeting_repo, application_repo):
    created = applications_service.submit_application(
        _payload(meeting, status="Approved", letter_emailed=True),
        regular_user,
        application_repo=application_repo,
        meeting_repo=meeting_repo,
    )

    assert created.id in application_repo.docs
    assert created.status == ApplicationStatus.pending
    assert created.is_imported is False
    assert created.letter_emailed is False
    assert created.user_id == regular_user.id


def test_submission_requires_fields(regular_user, meeting, meeting_repo, application_repo):
    with pytest.raises(ValidationError) as excinfo:
        applications_service.submit_application(
            _payload(meeting, phone="", city=""),
            regular_user,
            application_repo=application_repo,
            meeting_repo=meeting_repo,
        )

    assert excinfo.value.details == {"missing": ["city", "phone"]}


def test_submission_checks_meeting_and_invariants(regular_user, meeting, meeting_repo, application_repo):
    with pytest.raises(RecordNotFoundError):
        applications_service.submit_application(
            _payload(meeting, meeting_id="65f0000000000000000000ff"),
            regular_user,
            application_repo=application_repo,
            meeting_repo=meeting_repo,
        )
    with pytest.raises(ValidationError, match="Departure date must be after arrival date"):
        applications_service.submit_application(
            _payload(meeting, date_of_departure="2026-05-01"),
            regular_user,
            application_repo=application_repo,
            meeting_repo=meeting_repo,
        )


def test_users_only_see_their_own(regular_user, admin_user, meeting, application_repo):
    mine = _store(application_repo, regular_user, meeting)
    _store(application_repo, admin_user, meeting)

    listed = applications_service.list_applications(regular_user, application_repo=application_repo)
    assert [a.id for a in listed] == [mine.id]

    with pytest.raises(PermissionDeniedError):
        applications_service.list_applications(regular_user, include_all=True, application_repo=application_repo)
    assert len(applications_service.list_applications(admin_user, include_all=True, application_repo=application_repo)) == 2


def test_other_users_application_is_forbidden(regular_user, admin_user, meeting, application_repo):
    theirs = _store(application_repo, admin_user, meeting)

    with pytest.raises(PermissionDeniedError):
        applications_service.get_application(theirs.id, regular_user, application_repo=application_repo)


def test_owner_edits_pending_but_not_admin_fields(regular_user, meeting, meeting_repo, application_repo):
    stored = _store(application_repo, regular_user, meeting)

    updated = applications_service.update_application(
        stored.id, {"city": "Split", "bogus": 1}, regular_user,
        application_repo=application_repo, meeting_repo=meeting_repo,
    )
    assert updated.city == "Split"
    assert updated.last_updated_by == regular_user.id

    with pytest.raises(PermissionDeniedError, match="status"):
        applications_service.update_application(
            stored.id, {"status": "Approved"}, regular_user,
            application_repo=application_repo, meeting_repo=meeting_repo,
        )


def test_owner_cannot_edit_after_approval(regular_user, meeting, meeting_repo, application_repo):
    stored = _store(application_repo, regular_user, meeting, status=ApplicationStatus.approved)

    with pytest.raises(PermissionDeniedError):
        applications_service.update_application(
            stored.id, {"city": "Split"}, regular_user,
            application_repo=application_repo, meeting_repo=meeting_repo,
        )


def test_admin_sets_status_with_legacy_synonym(admin_user, regular_user, meeting, meeting_repo, application_repo):
    stored = _store(application_repo, regular_user, meeting)

    updated = applications_service.update_application(
        stored.id, {"status": "Complete", "letter_emailed": True}, admin_user,
        application_repo=application_repo, meeting_repo=meeting_repo,
    )

    assert updated.status == ApplicationStatus.approved
    assert application_repo.docs[stored.id].letter_emailed is True


def test_letter_for_pending_application_is_rejected_before_rendering(regular_user, meeting, meeting_repo, application_repo):
    stored = _store(application_repo, regular_user, meeting)

    def renderer(application, meeting):  # pragma: no cover - must not run
        raise AssertionError("renderer called")

    with pytest.raises(InvalidStatusError):
        applications_service.generate_letter(
            stored.id, regular_user,
            application_repo=application_repo, meeting_repo=meeting_repo, renderer=renderer,
        )
    assert application_repo.docs[stored.id].pdf_generated is False


def test_letter_generation_marks_record(regular_user, meeting, meeting_repo, application_repo):
    stored = _store(application_repo, regular_user, meeting, status=ApplicationStatus.approved)
    seen = {}

    def renderer(application, letter_meeting):
        seen["meeting"] = letter_meeting
        return RenderedPdf(filename="x.pdf", path="/tmp/x.pdf", size=10)

    rendered = applications_service.generate_letter(
        stored.id, regular_user,
        application_repo=application_repo, meeting_repo=meeting_repo, renderer=renderer,
    )

    assert rendered.filename == "x.pdf"
    assert seen["meeting"] is meeting
    record = application_repo.docs[stored.id]
    assert record.pdf_generated is True
    assert isinstance(record.pdf_generated_at, datetime)


def test_owner_cannot_delete(regular_user, meeting, application_repo):
    stored = _store(application_repo, regular_user, meeting)

    with pytest.raises(PermissionDeniedError):
        applications_service.delete_application(stored.id, regular_user, application_repo=application_repo)

    assert stored.id in application_repo.docs


def test_admin_deletes_any_application(admin_user, regular_user, meeting, application_repo):
    stored = _store(application_repo, regular_user, meeting)

    applications_service.delete_application(stored.id, admin_user, application_repo=application_repo)

    assert stored.id not in application_repo.docs
