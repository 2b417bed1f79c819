"""Per-request session context."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from app.core.policy import Capability, policy
from app.schemas.users import UserRole


@dataclass(frozen=True)
class SessionContext:
    """
    The signed-in user for one request.

    Built by the authentication dependency from a verified access token and the
    caller's profile, then handed explicitly to services and the scoped store.
    """

    user_id: UUID
    role: UserRole
    profile: dict[str, Any] = field(compare=False)
    access_token: str = field(default="", repr=False, compare=False)
    demo: bool = False

    @property
    def is_staff(self) -> bool:
        return self.role == UserRole.STAFF

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    @property
    def capabilities(self) -> list[str]:
        return policy.capabilities(self.role)

    def require(self, capability: Capability) -> None:
        """Raise ForbiddenException unless this session's role grants ``capability``."""
        policy.require(self.role, capability)
