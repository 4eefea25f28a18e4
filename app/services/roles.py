"""Role-based access checks."""

from typing import Protocol

from app.errors import Forbidden
from app.models.user import Role


class HasRole(Protocol):
    role: str


def allow(identity: HasRole, allowed_roles: set[Role]) -> bool:
    """Return whether the identity's role is one of ``allowed_roles``."""
    role = identity.role.value if isinstance(identity.role, Role) else identity.role
    return role in {r.value for r in allowed_roles}


def ensure_allowed(identity: HasRole, allowed_roles: set[Role]) -> None:
    """Raise Forbidden unless ``allow`` passes."""
    if not allow(identity, allowed_roles):
        raise Forbidden("You do not have permission to perform this action")
