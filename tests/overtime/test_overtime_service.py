from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest

from opsdesk.approvals.workflow import LEVEL1_REQUIRED
from opsdesk.core.enums import ApprovalState, DecisionStatus, Role
from opsdesk.core.exceptions import AuthorizationError, InvariantError, NotFoundError, ValidationError
from opsdesk.overtime.model import OvertimeRequest
from opsdesk.overtime.service import OvertimeService


class InMemoryOvertime:
    def __init__(self):
        self.items: dict[int, OvertimeRequest] = {}
        self._id = 0
        self.before_apply = None
        self.positions: dict[int, str] = {}

    def create(self, *, requested_by, attendance_id, overtime_date, start_time, end_time, total_hours, reason, auto_approved_at=None) -> int:
        self._id += 1
        req = OvertimeRequest(
            id=self._id,
            requested_by=requested_by,
            attendance_id=attendance_id,
            overtime_date=overtime_date,
            start_time=start_time,
            end_time=end_time,
            total_hours=total_hours,
            reason=reason,
        )
        if auto_approved_at is not None:
            approved = DecisionStatus.APPROVED
            req = replace(
                req,
                level1_status=approved,
                level1_reviewer=requested_by,
                level1_reviewed_at=auto_approved_at,
                level2_status=approved,
                level2_reviewer=requested_by,
                level2_reviewed_at=auto_approved_at,
                final_status=approved,
                status=approved,
                reviewer=requested_by,
                approved_at=auto_approved_at,
            )
        self.items[self._id] = req
        return self._id

    def get_by_id(self, request_id: int) -> Optional[OvertimeRequest]:
        return self.items.get(request_id)

    def has_active_for_date(self, user_id: int, overtime_date: date) -> bool:
        return any(
            r.requested_by == user_id
            and r.overtime_date == overtime_date
            and r.final_status in (None, DecisionStatus.APPROVED)
            for r in self.items.values()
        )

    def list_for_user(self, user_id: int, *, limit: int):
        return [r for r in self.items.values() if r.requested_by == user_id][:limit]

    def list_all(self, *, limit: int):
        return [
            {
                "request": r,
                "employee_name": f"User {r.requested_by}",
                "employee_position": self.positions.get(r.requested_by),
            }
            for r in self.items.values()
        ][:limit]

    def delete_pending(self, request_id: int) -> bool:
        current = self.items.get(request_id)
        if current is None or current.level1_status != DecisionStatus.PENDING:
            return False
        del self.items[request_id]
        return True

    def apply_decision(self, request_id: int, *, expected, updates) -> bool:
        if self.before_apply:
            hook, self.before_apply = self.before_apply, None
            hook()
        current = self.items[request_id]
        if any(getattr(current, k) != v for k, v in expected.items()):
            return False
        self.items[request_id] = replace(current, **updates)
        return True


class AttendanceStub:
    def __init__(self, record_id: Optional[int] = None, *, fail: bool = False):
        self.record_id = record_id
        self.fail = fail
        self.approved: dict[int, bool] = {}

    def get_for_user_and_date(self, user_id: int, work_date: date):
        if self.record_id is None:
            return None

        class _Rec:
            id = self.record_id

        return _Rec()

    def set_overtime_approved(self, attendance_id: int, approved: bool) -> bool:
        if self.fail:
            raise RuntimeError("db down")
        self.approved[attendance_id] = approved
        return True


@pytest.fixture
def repo():
    return InMemoryOvertime()


@pytest.fixture
def attendance():
    return AttendanceStub(record_id=42)


@pytest.fixture
def service(repo, attendance, policy):
    return OvertimeService(repo, attendance, policy=policy, auto_approve_positions=("Operations Manager",))


@pytest.fixture
def level1(make_ctx):
    return make_ctx(10, role=Role.ADMIN, position="Admin Tech")


@pytest.fixture
def level2(make_ctx):
    return make_ctx(20, role=Role.ADMIN, position="Operations Manager")


def _file(service, ctx, fixed_now, **overrides):
    values = dict(overtime_date="2026-03-02", start_time="18:00", end_time="21:30", reason="Store rollout", now=fixed_now)
    values.update(overrides)
    return service.file_request(ctx, **values)


def test_file_request_links_attendance_and_computes_hours(service, make_ctx, fixed_now):
    req = _file(service, make_ctx(), fixed_now)
    assert req.total_hours == Decimal("3.5")
    assert req.attendance_id == 42
    assert req.state == ApprovalState.PENDING
    assert req.final_status is None


def test_overnight_span_wraps(service, make_ctx, fixed_now):
    req = _file(service, make_ctx(), fixed_now, start_time="22:00", end_time="02:00")
    assert req.total_hours == Decimal("4.0")


def test_missing_fields_and_bad_times(service, make_ctx, fixed_now):
    with pytest.raises(ValidationError, match="Please provide"):
        _file(service, make_ctx(), fixed_now, reason="  ")
    with pytest.raises(ValidationError):
        _file(service, make_ctx(), fixed_now, start_time="6pm")
    with pytest.raises(ValidationError):
        _file(service, make_ctx(), fixed_now, end_time="18:00")


def test_duplicate_for_same_date_until_rejected(service, repo, make_ctx, level1, fixed_now):
    ctx = make_ctx()
    first = _file(service, ctx, fixed_now)
    with pytest.raises(InvariantError, match="already have a pending or approved"):
        _file(service, ctx, fixed_now)

    service.decide(level1, request_id=first.id, level="level1", action="reject", now=fixed_now)
    again = _file(service, ctx, fixed_now)
    assert again.id != first.id


def test_auto_approve_positions(service, attendance, make_ctx, fixed_now):
    req = _file(service, make_ctx(5, position="Operations Manager"), fixed_now)
    assert req.level1_status == DecisionStatus.APPROVED
    assert req.level2_status == DecisionStatus.APPROVED
    assert req.final_status == DecisionStatus.APPROVED
    assert req.level1_reviewer == 5
    assert attendance.approved == {42: True}


def test_two_level_approval(service, attendance, make_ctx, level1, level2, fixed_now):
    req = _file(service, make_ctx(), fixed_now)

    after_l1 = service.decide(level1, request_id=req.id, level="level1", action="approve", comment="ok", now=fixed_now)
    assert after_l1.state == ApprovalState.LEVEL1_APPROVED
    assert after_l1.level1_reviewer == 10
    assert after_l1.level1_comment == "ok"
    assert after_l1.final_status is None
    assert attendance.approved == {}

    done = service.decide(level2, request_id=req.id, level=2, action="approved", now=fixed_now)
    assert done.state == ApprovalState.APPROVED
    assert done.final_status == DecisionStatus.APPROVED
    assert done.status == DecisionStatus.APPROVED
    assert done.reviewer == 20
    assert attendance.approved == {42: True}


def test_level2_before_level1(service, make_ctx, level2, fixed_now):
    req = _file(service, make_ctx(), fixed_now)
    with pytest.raises(InvariantError, match=LEVEL1_REQUIRED):
        service.decide(level2, request_id=req.id, level="level2", action="approve", now=fixed_now)


def test_level1_rejection_is_final(service, attendance, make_ctx, level1, level2, fixed_now):
    req = _file(service, make_ctx(), fixed_now)
    rejected = service.decide(level1, request_id=req.id, level="level1", action="reject", now=fixed_now)
    assert rejected.final_status == DecisionStatus.REJECTED
    assert attendance.approved == {42: False}

    with pytest.raises(InvariantError, match=LEVEL1_REQUIRED):
        service.decide(level2, request_id=req.id, level="level2", action="approve", now=fixed_now)


def test_approver_permissions(service, make_ctx, level1, fixed_now):
    req = _file(service, make_ctx(), fixed_now)
    with pytest.raises(AuthorizationError):
        service.decide(make_ctx(3, position="Admin Tech"), request_id=req.id, level="level1", action="approve")
    with pytest.raises(AuthorizationError):
        service.decide(level1, request_id=req.id, level="level2", action="approve")


def test_unknown_request(service, level1):
    with pytest.raises(NotFoundError):
        service.decide(level1, request_id=999, level="level1", action="approve")


def test_concurrent_decision_loses_compare_and_swap(service, repo, make_ctx, level1, fixed_now):
    req = _file(service, make_ctx(), fixed_now)

    def other_reviewer():
        repo.items[req.id] = replace(repo.items[req.id], level1_status=DecisionStatus.REJECTED)

    repo.before_apply = other_reviewer
    with pytest.raises(InvariantError, match="already processed"):
        service.decide(level1, request_id=req.id, level="level1", action="approve", now=fixed_now)
    assert repo.items[req.id].level1_status == DecisionStatus.REJECTED


def test_attendance_sync_failure_does_not_fail_decision(repo, policy, make_ctx, level1, fixed_now):
    service = OvertimeService(repo, AttendanceStub(record_id=42, fail=True), policy=policy)
    req = _file(service, make_ctx(), fixed_now)
    rejected = service.decide(level1, request_id=req.id, level="level1", action="reject", now=fixed_now)
    assert rejected.final_status == DecisionStatus.REJECTED


def test_review_list_requires_view_permission_and_filters_by_state(service, make_ctx, level1, fixed_now):
    first = _file(service, make_ctx(1), fixed_now)
    _file(service, make_ctx(2), fixed_now)
    service.decide(level1, request_id=first.id, level="level1", action="approve", now=fixed_now)
    reviewer = make_ctx(10, role=Role.ADMIN, position="Admin Tech", permissions={"view_overtime"})

    with pytest.raises(AuthorizationError):
        service.list_for_review(make_ctx(1, permissions={"view_overtime"}))
    with pytest.raises(AuthorizationError, match="view overtime requests"):
        service.list_for_review(level1)
    rows = service.list_for_review(reviewer, state="level1_approved")
    assert [r["request"].id for r in rows] == [first.id]
    assert len(service.list_for_review(reviewer)) == 2


def test_review_list_hides_hr_and_accounting_except_from_managing_director(service, repo, make_ctx, fixed_now):
    repo.positions.update({1: "HR", 2: "accounting", 3: "Field Engineer"})
    for user_id in (1, 2, 3):
        _file(service, make_ctx(user_id), fixed_now)

    reviewer = make_ctx(10, role=Role.ADMIN, position="Operations Manager", permissions={"view_overtime"})
    director = make_ctx(11, role=Role.ADMIN, position="Managing Director", permissions={"view_overtime"})

    assert [r["request"].requested_by for r in service.list_for_review(reviewer)] == [3]
    assert [r["request"].requested_by for r in service.list_for_review(director)] == [1, 2, 3]


def test_withdraw_pending_request(service, repo, make_ctx, fixed_now):
    owner = make_ctx(4)
    req = _file(service, owner, fixed_now)

    with pytest.raises(AuthorizationError, match="your own overtime"):
        service.withdraw(make_ctx(5), request_id=req.id)
    service.withdraw(owner, request_id=req.id)

    assert req.id not in repo.items
    with pytest.raises(NotFoundError):
        service.withdraw(owner, request_id=req.id)


def test_withdraw_refused_once_reviewed(service, repo, make_ctx, level1, fixed_now):
    owner = make_ctx(4)
    req = _file(service, owner, fixed_now)
    service.decide(level1, request_id=req.id, level="level1", action="approve", now=fixed_now)

    with pytest.raises(InvariantError, match="already been reviewed"):
        service.withdraw(owner, request_id=req.id)
    assert req.id in repo.items

    auto = _file(service, make_ctx(6, position="Operations Manager"), fixed_now)
    with pytest.raises(InvariantError, match="already been reviewed"):
        service.withdraw(make_ctx(6, position="Operations Manager"), request_id=auto.id)
