# services/auth_service.py
import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from werkzeug.security import check_password_hash, generate_password_hash

from domain.models.user import Role, User
from middleware.errors import DuplicateKeyError, ValidationError, describe_validation_error
from repositories.users_repository import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def authenticate(email: str, password: str, *, repo: Optional[UserRepository] = None) -> Optional[User]:
    """Return the user if email/password are valid; otherwise None."""
    repo = repo or UserRepository()
    user = repo.get_by_email(email)
    if not user:
        return None
    if not check_password_hash(user.password_hash, password or ""):
        return None
    repo.update(user.id, {"last_login": _utcnow()})
    return user


def register_user(
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    *,
    role: Role = Role.user,
    repo: Optional[UserRepository] = None,
) -> User:
    """Create a new user with a hashed password. Raises on duplicate email."""
    repo = repo or UserRepository()
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if repo.get_by_email(email):
        raise DuplicateKeyError("Email already registered", details={"email": email})

    try:
        user = User(
            email=email,
            password_hash=generate_password_hash(password),
            first_name=(first_name or "").strip(),
            last_name=(last_name or "").strip(),
            role=role,
            created_at=_utcnow(),
        )
    except PydanticValidationError as exc:
        raise ValidationError(describe_validation_error(exc)) from exc

    user_id = repo.create(user)
    return user.model_copy(update={"id": user_id})


def _load_admin_users_from_env() -> list[tuple[str, str]]:
    """
    Returns a list of (email, password) from env:
      1) ADMIN_USERS (JSON array of {"email","password"})
      2) ADMIN_EMAIL + ADMIN_PASSWORD (single pair)
    """
    users: list[tuple[str, str]] = []

    raw_json = os.getenv("ADMIN_USERS")
    if raw_json:
        try:
            for item in json.loads(raw_json):
                email = (item.get("email") or "").strip().lower()
                password = item.get("password")
                if email and password is not None:
                    users.append((email, password))
        except (json.JSONDecodeError, AttributeError, TypeError) as e:
            logger.error("Failed to parse ADMIN_USERS JSON: %s", e)

    if not users:
        email = (os.getenv("ADMIN_EMAIL") or "").strip().lower()
        password = os.getenv("ADMIN_PASSWORD")
        if email and password is not None:
            users.append((email, password))

    # Deduplicate by email, keep the first occurrence
    seen = set()
    deduped: list[tuple[str, str]] = []
    for email, password in users:
        if email not in seen:
            seen.add(email)
            deduped.append((email, password))
    return deduped


def ensure_default_users(*, repo: Optional[UserRepository] = None) -> int:
    """Idempotently create the configured admin users. Returns how many were created."""
    defaults = _load_admin_users_from_env()
    if not defaults:
        return 0

    repo = repo or UserRepository()
    created = 0
    for email, raw_pw in defaults:
        if repo.get_by_email(email):
            continue
        repo.create(
            User(
                email=email,
                password_hash=generate_password_hash(raw_pw),
                first_name="Admin",
                last_name="User",
                role=Role.admin,
                created_at=_utcnow(),
            )
        )
        created += 1
        logger.info("Seeded admin user %s", email)
    return created
