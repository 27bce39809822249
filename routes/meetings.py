# routes/meetings.py
from flask import Blueprint, jsonify, request

from middleware.auth import admin_required
from middleware.errors import ValidationError
from services import meetings_service

meetings_bp = Blueprint("meetings", __name__, url_prefix="/api/meetings")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@meetings_bp.get("/", strict_slashes=False)
def list_meetings():
    return jsonify([m.to_dict() for m in meetings_service.list_meetings()])


@meetings_bp.get("/active")
def list_active_meetings():
    return jsonify([m.to_dict() for m in meetings_service.list_meetings(active_only=True)])


@meetings_bp.get("/<meeting_id>")
def get_meeting(meeting_id: str):
    return jsonify(meetings_service.get_meeting(meeting_id).to_dict())


@meetings_bp.post("/", strict_slashes=False)
@admin_required
def create_meeting():
    meeting = meetings_service.create_meeting(_json_body())
    return jsonify(meeting.to_dict()), 201


@meetings_bp.put("/<meeting_id>")
@admin_required
def update_meeting(meeting_id: str):
    meeting = meetings_service.update_meeting(meeting_id, _json_body())
    return jsonify(meeting.to_dict())


@meetings_bp.delete("/<meeting_id>")
@admin_required
def delete_meeting(meeting_id: str):
    meetings_service.delete_meeting(meeting_id)
    return jsonify({"status": "ok", "message": "Meeting deleted"})
