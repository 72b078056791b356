"""
Authorization policy.

Every protected operation asks ``authorize`` instead of comparing
role strings inline.
"""

from dataclasses import dataclass
from typing import Any

from app.core.exceptions import AuthenticationError
from app.models.user import Role


@dataclass(frozen=True)
class Principal:
    """Identity decoded from a verified auth token."""

    id: int
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_claims(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "role": self.role.value}

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal | None":
        """Build a principal from token claims, None if they are incomplete."""
        try:
            return cls(
                id=int(claims["id"]),
                email=str(claims["email"]),
                role=Role(claims["role"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


def is_allowed(principal: Principal | None, required_role: Role = Role.USER) -> bool:
    if principal is None:
        return False
    if required_role is Role.ADMIN:
        return principal.is_admin
    return True


def authorize(
    principal: Principal | None,
    required_role: Role = Role.USER,
) -> Principal:
    """
    Enforce access for a protected operation.

    Args:
        principal: Caller identity, None when unauthenticated
        required_role: Minimum role the operation needs

    Returns:
        The principal, when allowed

    Raises:
        AuthenticationError: Caller is anonymous or lacks the role
    """
    if not is_allowed(principal, required_role):
        raise AuthenticationError("Unauthorized")
    return principal
