from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest

from opsdesk.core.enums import DecisionStatus, Role
from opsdesk.core.exceptions import AuthorizationError, InvariantError, NotFoundError, ValidationError
from opsdesk.leave.model import LeaveRequest
from opsdesk.leave.service import LeaveService


class InMemoryLeaves:
    def __init__(self, profiles):
        self.profiles = profiles
        self.items: dict[int, LeaveRequest] = {}
        self._id = 0

    def create(self, *, employee_id, leave_type, start_date, end_date, reason) -> int:
        self._id += 1
        self.items[self._id] = LeaveRequest(
            id=self._id,
            employee_id=employee_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
        )
        return self._id

    def get_by_id(self, request_id: int) -> Optional[LeaveRequest]:
        return self.items.get(request_id)

    def has_overlapping_approved(self, employee_id: int, start_date: date, end_date: date) -> bool:
        return any(
            r.employee_id == employee_id
            and r.status == DecisionStatus.APPROVED
            and r.start_date <= end_date
            and r.end_date >= start_date
            for r in self.items.values()
        )

    def list_for_user(self, employee_id: int, *, limit: int):
        return [r for r in self.items.values() if r.employee_id == employee_id][:limit]

    def list_all(self, *, status=None, limit: int):
        return [{"request": r} for r in self.items.values() if status is None or r.status == status][:limit]

    def decide(self, request_id, *, status, reviewer_id, reviewed_at, comment, deduct_credits=None) -> bool:
        current = self.items[request_id]
        if current.status != DecisionStatus.PENDING:
            return False
        self.items[request_id] = replace(
            current, status=status, reviewer_id=reviewer_id, reviewed_at=reviewed_at, reviewer_comment=comment
        )
        if deduct_credits is not None:
            profile = self.profiles.get_by_id(current.employee_id)
            self.profiles.add(replace(profile, leave_credits=profile.leave_credits - deduct_credits))
        return True

    def revoke(self, request_id, *, reviewer_id, reviewed_at, comment, restore_credits) -> bool:
        current = self.items[request_id]
        if current.status != DecisionStatus.APPROVED:
            return False
        self.items[request_id] = replace(
            current,
            status=DecisionStatus.REVOKED,
            reviewer_id=reviewer_id,
            reviewed_at=reviewed_at,
            reviewer_comment=comment,
        )
        profile = self.profiles.get_by_id(current.employee_id)
        self.profiles.add(replace(profile, leave_credits=profile.leave_credits + restore_credits))
        return True


@pytest.fixture
def leaves(profiles):
    return InMemoryLeaves(profiles)


@pytest.fixture
def service(leaves, profiles, policy):
    return LeaveService(leaves, profiles, policy=policy)


@pytest.fixture
def manager(make_ctx):
    return make_ctx(50, role=Role.ADMIN, position="Operations Manager")


def _create(service, ctx, **overrides):
    values = dict(leave_type="vacation", start_date="2026-03-10", end_date="2026-03-12", reason="Family trip")
    values.update(overrides)
    return service.create(ctx, **values)


def test_create_checks_credits(service, profiles, make_profile, make_ctx):
    profiles.add(make_profile(1, leave_credits="2"))
    with pytest.raises(ValidationError, match="You have 2 credits but requested 3 days"):
        _create(service, make_ctx(1))

    profiles.add(make_profile(1, leave_credits="3"))
    req = _create(service, make_ctx(1))
    assert req.duration_days == 3
    assert req.status == DecisionStatus.PENDING


def test_create_validation(service, profiles, make_profile, make_ctx):
    profiles.add(make_profile(1, leave_credits="10"))
    with pytest.raises(ValidationError, match="Missing required fields"):
        _create(service, make_ctx(1), reason="")
    with pytest.raises(ValidationError, match="End date must be after start date"):
        _create(service, make_ctx(1), start_date="2026-03-12", end_date="2026-03-10")


def test_approve_deducts_credits_once(service, profiles, make_profile, make_ctx, manager, fixed_now):
    profiles.add(make_profile(1, leave_credits="5"))
    req = _create(service, make_ctx(1))

    approved = service.decide(manager, request_id=req.id, action="approve", comment="enjoy", now=fixed_now)
    assert approved.status == DecisionStatus.APPROVED
    assert approved.reviewer_id == 50
    assert approved.reviewer_comment == "enjoy"
    assert profiles.get_by_id(1).leave_credits == Decimal("2")

    with pytest.raises(InvariantError, match="already processed"):
        service.decide(manager, request_id=req.id, action="reject", now=fixed_now)
    assert profiles.get_by_id(1).leave_credits == Decimal("2")


def test_reject_keeps_credits(service, profiles, make_profile, make_ctx, manager, fixed_now):
    profiles.add(make_profile(1, leave_credits="5"))
    req = _create(service, make_ctx(1))
    rejected = service.decide(manager, request_id=req.id, action="rejected", now=fixed_now)
    assert rejected.status == DecisionStatus.REJECTED
    assert profiles.get_by_id(1).leave_credits == Decimal("5")


def test_approval_rechecks_credits(service, profiles, make_profile, make_ctx, manager, fixed_now):
    profiles.add(make_profile(1, leave_credits="5"))
    first = _create(service, make_ctx(1))
    second = _create(service, make_ctx(1), start_date="2026-04-01", end_date="2026-04-03")
    service.decide(manager, request_id=first.id, action="approve", now=fixed_now)

    with pytest.raises(InvariantError, match="Insufficient leave credits"):
        service.decide(manager, request_id=second.id, action="approve", now=fixed_now)
    assert service.list_my_requests(make_ctx(1))[1].status == DecisionStatus.PENDING


def test_overlap_with_approved_leave(service, profiles, make_profile, make_ctx, manager, fixed_now):
    profiles.add(make_profile(1, leave_credits="10"))
    first = _create(service, make_ctx(1))
    service.decide(manager, request_id=first.id, action="approve", now=fixed_now)
    with pytest.raises(InvariantError, match="overlaps"):
        _create(service, make_ctx(1), start_date="2026-03-12", end_date="2026-03-13")


def test_director_only_positions(service, profiles, make_profile, make_ctx, manager, fixed_now):
    profiles.add(make_profile(1, position="HR", leave_credits="10"))
    req = _create(service, make_ctx(1, position="HR"))

    with pytest.raises(AuthorizationError, match="Managing Director"):
        service.decide(manager, request_id=req.id, action="approve", now=fixed_now)

    director = make_ctx(60, role=Role.ADMIN, position="Managing Director")
    assert service.decide(director, request_id=req.id, action="approve", now=fixed_now).status == DecisionStatus.APPROVED


def test_review_list(service, profiles, make_profile, make_ctx, manager):
    profiles.add(make_profile(1, leave_credits="10"))
    _create(service, make_ctx(1))

    with pytest.raises(AuthorizationError):
        service.list_for_review(make_ctx(1))
    assert len(service.list_for_review(make_ctx(2, permissions={"manage_leave_requests"}))) == 1
    assert service.list_for_review(manager, status="approved") == []
    with pytest.raises(ValidationError):
        service.list_for_review(manager, status="archived")


@pytest.fixture
def revoker(make_ctx):
    return make_ctx(70, role=Role.ADMIN, position="HR Officer", permissions={"manage_leave_requests"})


def test_revoke_restores_credits(service, profiles, make_profile, make_ctx, manager, revoker, fixed_now):
    profiles.add(make_profile(1, leave_credits="5"))
    req = _create(service, make_ctx(1))
    service.decide(manager, request_id=req.id, action="approve", now=fixed_now)

    revoked = service.revoke(revoker, request_id=req.id, now=fixed_now)
    assert revoked.status == DecisionStatus.REVOKED
    assert revoked.reviewer_id == 70
    assert revoked.reviewer_comment == "Leave revoked"
    assert profiles.get_by_id(1).leave_credits == Decimal("5")

    with pytest.raises(InvariantError, match="Only approved leave requests can be revoked"):
        service.revoke(revoker, request_id=req.id, now=fixed_now)
    assert profiles.get_by_id(1).leave_credits == Decimal("5")
    assert service.list_for_review(manager, status="revoked")[0]["request"].id == req.id


def test_revoke_frees_the_dates(service, profiles, make_profile, make_ctx, manager, revoker, fixed_now):
    profiles.add(make_profile(1, leave_credits="10"))
    req = _create(service, make_ctx(1))
    service.decide(manager, request_id=req.id, action="approve", now=fixed_now)
    service.revoke(revoker, request_id=req.id, comment="Store reopened", now=fixed_now)

    again = _create(service, make_ctx(1), start_date="2026-03-11", end_date="2026-03-11")
    assert again.status == DecisionStatus.PENDING
    assert service.list_my_requests(make_ctx(1))[0].reviewer_comment == "Store reopened"


def test_revoke_rules(service, profiles, make_profile, make_ctx, manager, revoker, fixed_now):
    profiles.add(make_profile(1, leave_credits="5"))
    req = _create(service, make_ctx(1))

    with pytest.raises(InvariantError, match="Only approved"):
        service.revoke(revoker, request_id=req.id, now=fixed_now)
    service.decide(manager, request_id=req.id, action="approve", now=fixed_now)

    with pytest.raises(AuthorizationError, match="revoke leave requests"):
        service.revoke(manager, request_id=req.id, now=fixed_now)
    with pytest.raises(AuthorizationError):
        service.revoke(make_ctx(2, permissions={"manage_leave_requests"}), request_id=req.id, now=fixed_now)
    with pytest.raises(NotFoundError):
        service.revoke(revoker, request_id=999, now=fixed_now)
    assert profiles.get_by_id(1).leave_credits == Decimal("2")
