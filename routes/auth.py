# routes/auth.py
from flask import jsonify, request, session

from middleware.auth import auth_bp, current_user, login_required
from middleware.errors import AuthenticationError, ValidationError
from services.auth_service import authenticate, register_user


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@auth_bp.post("/register")
def register():
    """Create an account and log it in."""
    data = _json_body()
    user = register_user(
        (data.get("email") or "").strip(),
        data.get("password") or "",
        data.get("first_name") or "",
        data.get("last_name") or "",
    )
    session.clear()
    session["user_id"] = user.id
    return jsonify({"status": "ok", "user": user.to_public_dict()}), 201


@auth_bp.post("/login")
def login():
    data = _json_body()
    user = authenticate((data.get("email") or "").strip(), data.get("password") or "")
    if not user:
        raise AuthenticationError("Invalid email or password")

    # Minimal session payload; the profile is reloaded per request
    session.clear()
    session["user_id"] = user.id
    return jsonify({"status": "ok", "user": user.to_public_dict()})


@auth_bp.post("/logout")
def logout():
    session.clear()
    return jsonify({"status": "ok"})


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({"status": "ok", "user": current_user().to_public_dict()})
