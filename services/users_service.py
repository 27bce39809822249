# services/users_service.py
"""Administrative user management."""

from __future__ import annotations

import logging
from typing import List, Optional

from domain.models.user import Role, User
from middleware.errors import PermissionDeniedError, RecordNotFoundError, ValidationError
from repositories.users_repository import UserRepository
from services.auth_service import register_user

logger = logging.getLogger(__name__)


def list_users(*, repo: Optional[UserRepository] = None) -> List[User]:
    repo = repo or UserRepository()
    return repo.find_all()


def create_user(data: dict, *, repo: Optional[UserRepository] = None) -> User:
    """Create a user on behalf of an administrator (role may be given)."""
    repo = repo or UserRepository()
    try:
        role = Role((data.get("role") or Role.user.value).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid role: {data.get('role')}") from None
    return register_user(
        data.get("email") or "",
        data.get("password") or "",
        data.get("first_name") or "",
        data.get("last_name") or "",
        role=role,
        repo=repo,
    )


def _get_or_404(repo: UserRepository, user_id: str) -> User:
    user = repo.get_by_id(user_id)
    if user is None:
        raise RecordNotFoundError("User not found", details={"user_id": user_id})
    return user


def set_role(user_id: str, role: str, *, repo: Optional[UserRepository] = None) -> User:
    """Change a user's role; the last administrator cannot be demoted."""
    repo = repo or UserRepository()
    try:
        new_role = Role(str(role or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid role: {role}") from None

    user = _get_or_404(repo, user_id)
    if user.is_admin and new_role != Role.admin and repo.count_admins() <= 1:
        raise PermissionDeniedError("Cannot remove the last administrator")

    repo.update(user_id, {"role": new_role.value})
    logger.info("User %s role changed to %s", user.email, new_role.value)
    return user.model_copy(update={"role": new_role})


def delete_user(user_id: str, *, repo: Optional[UserRepository] = None) -> None:
    """Delete a user; the last administrator cannot be deleted."""
    repo = repo or UserRepository()
    user = _get_or_404(repo, user_id)
    if user.is_admin and repo.count_admins() <= 1:
        raise PermissionDeniedError("Cannot delete the last administrator")
    repo.delete(user_id)
    logger.info("User %s deleted", user.email)
