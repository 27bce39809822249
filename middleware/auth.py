# middleware/auth.py
from functools import wraps
from typing import Optional

from flask import Blueprint, current_app, g, session
from pymongo.errors import PyMongoError

from domain.models.user import User
from middleware.errors import AuthenticationError, PermissionDeniedError
from repositories.users_repository import UserRepository
from services.auth_service import ensure_default_users

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.before_app_request
def _seed_default_users_once():
    # store a flag on the app object so it persists across requests
    if not current_app.config.get("_DEFAULT_USERS_SEEDED", False):
        try:
            ensure_default_users()
        except (PyMongoError, RuntimeError) as exc:
            current_app.logger.warning("ensure_default_users failed: %s", exc)
        current_app.config["_DEFAULT_USERS_SEEDED"] = True


def current_user() -> Optional[User]:
    """The logged-in user for this request, loaded once per request."""
    if "current_user" not in g:
        user_id = session.get("user_id")
        g.current_user = UserRepository().get_by_id(user_id) if user_id else None
    return g.current_user


def login_required(view_func):
    """Decorator that requires a logged-in user (session['user_id'])."""
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            session.pop("user_id", None)
            raise AuthenticationError("Please log in to continue")
        return view_func(*args, **kwargs)
    return wrapper


def admin_required(view_func):
    """Decorator that requires a logged-in administrator."""
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        user = current_user()
        if user is None:
            raise AuthenticationError("Please log in to continue")
        if not user.is_admin:
            raise PermissionDeniedError("Administrator access required")
        return view_func(*args, **kwargs)
    return wrapper
