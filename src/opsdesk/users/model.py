from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Profile:
    """Domain entity: an employee profile.

    Plain data only. ``permissions`` is the set of keys granted through the
    profile's position.
    """

    id: int
    email: str
    first_name: str
    last_name: str
    password_hash: str
    role: Role
    position: Optional[str] = None
    permissions: frozenset[str] = field(default_factory=frozenset)
    leave_credits: Decimal = Decimal("0")
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email
