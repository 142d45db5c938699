from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class RequestContext:
    """Authenticated identity for one HTTP request.

    Resolved once from the bearer token and passed explicitly to services,
    which hand it to the policy engine as the principal.
    """

    user_id: int
    email: str
    role: Role
    position: Optional[str] = None
    permissions: frozenset[str] = field(default_factory=frozenset)
    full_name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def has_permission(self, key: str) -> bool:
        return key in self.permissions
