"""Authentication dependencies for FastAPI routes."""

from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import Role, User
from app.services.auth import get_auth_service
from app.services.roles import ensure_allowed


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated user context."""

    user_id: int
    email: str
    name: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> "CurrentUser":
        return cls(user_id=user.id, email=user.email, name=user.name, role=user.role)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> CurrentUser:
    """Validate the Bearer token and load its user. Raises Unauthenticated (401) otherwise."""
    user = get_auth_service().authorize(db, request.headers.get("Authorization"))
    return CurrentUser.from_user(user)


def restrict_to(allowed_roles: set[Role]) -> Callable[..., CurrentUser]:
    """Build a dependency that authenticates the request, then requires one of ``allowed_roles``."""

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        ensure_allowed(user, allowed_roles)
        return user

    return dependency
