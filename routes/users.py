# routes/users.py
from flask import Blueprint, jsonify, request

from middleware.auth import admin_required, current_user
from middleware.errors import PermissionDeniedError, ValidationError
from services import users_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@users_bp.get("/", strict_slashes=False)
@admin_required
def list_users():
    return jsonify([u.to_public_dict() for u in users_service.list_users()])


@users_bp.post("/", strict_slashes=False)
@admin_required
def create_user():
    user = users_service.create_user(_json_body())
    return jsonify(user.to_public_dict()), 201


@users_bp.put("/<user_id>/role")
@admin_required
def set_role(user_id: str):
    user = users_service.set_role(user_id, _json_body().get("role"))
    return jsonify(user.to_public_dict())


@users_bp.delete("/<user_id>")
@admin_required
def delete_user(user_id: str):
    if user_id == current_user().id:
        raise PermissionDeniedError("You cannot delete your own account")
    users_service.delete_user(user_id)
    return jsonify({"status": "ok", "message": "User deleted"})
