# routes/applications.py
"""Application endpoints: CRUD, letter download, CSV import/export."""

from __future__ import annotations

import logging
import os
import unicodedata
from urllib.parse import quote

from flask import Blueprint, Response, current_app, jsonify, request

from middleware.auth import admin_required, current_user, login_required
from middleware.errors import ValidationError
from services import applications_service
from services.export_service import CSV_MIMETYPE, export_meeting_applications, import_template
from services.import_service import import_csv
from utils.helpers import parse_bool

applications_bp = Blueprint("applications", __name__, url_prefix="/api/applications")
ALLOWED_EXTENSIONS = {".csv"}

logger = logging.getLogger(__name__)


def _allowed_file(filename: str) -> bool:
    _, ext = os.path.splitext(filename.lower())
    return ext in ALLOWED_EXTENSIONS


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _csv_response(export) -> Response:
    response = Response(export.content, mimetype=CSV_MIMETYPE)
    response.headers["Content-Disposition"] = f'attachment; filename="{export.filename}"'
    return response


@applications_bp.get("/", strict_slashes=False)
@login_required
def list_applications():
    include_all = parse_bool(request.args.get("admin"))
    items = applications_service.list_applications(current_user(), include_all=include_all)
    return jsonify([item.to_public_dict() for item in items])


@applications_bp.post("/", strict_slashes=False)
@login_required
def submit_application():
    created = applications_service.submit_application(_json_body(), current_user())
    return jsonify(created.to_public_dict()), 201


@applications_bp.get("/<application_id>")
@login_required
def get_application(application_id: str):
    application = applications_service.get_application(application_id, current_user())
    return jsonify(application.to_public_dict())


@applications_bp.put("/<application_id>")
@login_required
def update_application(application_id: str):
    updated = applications_service.update_application(application_id, _json_body(), current_user())
    return jsonify(updated.to_public_dict())


@applications_bp.delete("/<application_id>")
@admin_required
def delete_application(application_id: str):
    applications_service.delete_application(application_id, current_user())
    return jsonify({"status": "ok", "message": "Application deleted"})


def _attachment_headers(filename: str) -> dict:
    try:
        filename.encode("ascii")
        return {"filename": filename}
    except UnicodeEncodeError:
        simple = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
        return {"filename": simple, "filename*": f"UTF-8''{quote(filename, safe='')}"}


def _read_chunks(handle, size: int = 64 * 1024):
    while True:
        chunk = handle.read(size)
        if not chunk:
            break
        yield chunk


@applications_bp.get("/<application_id>/pdf")
@login_required
def download_letter(application_id: str):
    """Stream the generated letter; the file is removed once the response closes."""
    rendered = applications_service.generate_letter(application_id, current_user())

    handle = None
    try:
        handle = open(rendered.path, "rb")
        response = Response(_read_chunks(handle), mimetype="application/pdf")
        response.headers.set("Content-Disposition", "attachment", **_attachment_headers(rendered.filename))
        response.headers["Content-Length"] = str(rendered.size)
        response.headers["Cache-Control"] = "no-store"
    except Exception:
        if handle is not None:
            handle.close()
        _discard(rendered.path)
        raise

    def _cleanup():
        handle.close()
        _discard(rendered.path)

    response.call_on_close(_cleanup)
    return response


def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove generated PDF %s: %s", path, exc)


@applications_bp.post("/import")
@admin_required
def import_applications():
    f = request.files.get("file")
    if not f or not f.filename:
        raise ValidationError("No file uploaded")
    if not _allowed_file(f.filename):
        raise ValidationError("Unsupported file type. Please upload a .csv file.")

    summary = import_csv(f.read(), current_user().id)
    current_app.logger.info(
        "CSV import by %s: %d rows, %d failed", current_user().email, summary.total, summary.failed
    )
    return jsonify(summary.to_dict())


@applications_bp.get("/import/template")
@admin_required
def download_import_template():
    return _csv_response(import_template())


@applications_bp.get("/export/<meeting_id>")
@admin_required
def export_applications(meeting_id: str):
    return _csv_response(export_meeting_applications(meeting_id))
