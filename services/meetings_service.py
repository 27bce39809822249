# services/meetings_service.py
from __future__ import annotations

import logging
from typing import List, Optional

from domain.models.meeting import Meeting
from middleware.errors import RecordNotFoundError, ValidationError
from repositories.meeting_repository import MeetingRepository

logger = logging.getLogger(__name__)


def list_meetings(*, active_only: bool = False, repo: Optional[MeetingRepository] = None) -> List[Meeting]:
    repo = repo or MeetingRepository()
    return repo.find_active() if active_only else repo.find_all()


def get_meeting(meeting_id: str, *, repo: Optional[MeetingRepository] = None) -> Meeting:
    repo = repo or MeetingRepository()
    meeting = repo.find_by_id(meeting_id)
    if meeting is None:
        raise RecordNotFoundError("Meeting not found", details={"meeting_id": meeting_id})
    return meeting


def create_meeting(data: dict, *, repo: Optional[MeetingRepository] = None) -> Meeting:
    repo = repo or MeetingRepository()
    try:
        meeting = Meeting.from_payload(data)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    repo.save(meeting)
    logger.info("Meeting created: %s", meeting.name)
    return meeting


def update_meeting(meeting_id: str, data: dict, *, repo: Optional[MeetingRepository] = None) -> Meeting:
    repo = repo or MeetingRepository()
    existing = get_meeting(meeting_id, repo=repo)
    try:
        merged = Meeting.from_payload(data, existing=existing)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    doc = merged.to_mongo()
    doc.pop("_id", None)
    doc.pop("created_at", None)
    updated = repo.update(meeting_id, doc)
    return updated or merged


def delete_meeting(meeting_id: str, *, repo: Optional[MeetingRepository] = None) -> None:
    repo = repo or MeetingRepository()
    if not repo.delete(meeting_id):
        raise RecordNotFoundError("Meeting not found", details={"meeting_id": meeting_id})
    logger.info("Meeting %s deleted", meeting_id)
