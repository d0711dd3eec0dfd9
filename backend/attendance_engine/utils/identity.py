"""Caller identity supplied by the identity provider through the JWT."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from flask_jwt_extended import get_jwt, get_jwt_identity


class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    TEACHER = 'teacher'
    COORDINATOR = 'coordinator'
    ADMIN = 'admin'


STAFF_ROLES = (UserRole.TEACHER.value, UserRole.COORDINATOR.value, UserRole.ADMIN.value)


@dataclass(frozen=True)
class Identity:
    """Verified caller: user id, display name and role names."""
    user_id: str
    display_name: str = None
    roles: Tuple[str, ...] = field(default_factory=tuple)

    def has_role(self, *roles: str) -> bool:
        return any(role in self.roles for role in roles)

    def is_admin(self) -> bool:
        return self.has_role(UserRole.ADMIN.value)

    def is_staff(self) -> bool:
        """Teachers, coordinators and admins."""
        return self.has_role(*STAFF_ROLES)


def current_identity() -> Identity:
    """Build the identity of the current request from its JWT claims.

    The token signature has already been checked by ``jwt_required``; this
    only reads the claims the identity provider put there.
    """
    claims = get_jwt()
    roles = claims.get('roles') or []
    if isinstance(roles, str):
        roles = [roles]

    user_id = str(get_jwt_identity())
    return Identity(
        user_id=user_id,
        display_name=claims.get('name') or claims.get('email') or user_id,
        roles=tuple(str(role).lower() for role in roles)
    )
