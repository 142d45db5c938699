from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import pytest

from opsdesk.auth.context import RequestContext
from opsdesk.auth.policy import build_default_policy
from opsdesk.core.enums import Role
from opsdesk.users.model import Profile


class InMemoryProfiles:
    def __init__(self, *profiles: Profile):
        self.by_id: dict[int, Profile] = {p.id: p for p in profiles}

    def add(self, profile: Profile) -> Profile:
        self.by_id[profile.id] = profile
        return profile

    def get_by_id(self, user_id: int) -> Optional[Profile]:
        return self.by_id.get(user_id)

    def get_by_email(self, email: str) -> Optional[Profile]:
        return next((p for p in self.by_id.values() if p.email == email), None)

    def list_emails_with_permission(self, permission_key: str):
        return [p.email for p in self.by_id.values() if permission_key in p.permissions]


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 18, 30, 0)


@pytest.fixture
def policy():
    return build_default_policy(
        overtime_level1_positions=("Admin Tech", "Technical Support Engineer"),
        overtime_level2_positions=("Operations Manager",),
    )


@pytest.fixture
def make_ctx():
    def _make(user_id: int = 1, *, role: Role = Role.EMPLOYEE, position: Optional[str] = None, permissions=()):
        return RequestContext(
            user_id=user_id,
            email=f"user{user_id}@example.com",
            role=role,
            position=position,
            permissions=frozenset(permissions),
            full_name=f"User {user_id}",
        )

    return _make


@pytest.fixture
def make_profile():
    def _make(
        user_id: int,
        *,
        role: Role = Role.EMPLOYEE,
        position: Optional[str] = None,
        permissions=(),
        leave_credits: str = "0",
        password_hash: str = "",
    ) -> Profile:
        return Profile(
            id=user_id,
            email=f"user{user_id}@example.com",
            first_name="User",
            last_name=str(user_id),
            password_hash=password_hash,
            role=role,
            position=position,
            permissions=frozenset(permissions),
            leave_credits=Decimal(leave_credits),
        )

    return _make


@pytest.fixture
def profiles():
    return InMemoryProfiles()
