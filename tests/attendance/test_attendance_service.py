from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

import pytest

from opsdesk.attendance.model import AttendanceRecord
from opsdesk.attendance.service import AttendanceService
from opsdesk.core.exceptions import InvariantError, ValidationError


class InMemoryAttendance:
    def __init__(self):
        self.records: dict[int, AttendanceRecord] = {}
        self.approved: dict[int, bool] = {}
        self._id = 0

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self.records.get(attendance_id)

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        matches = [r for r in self.records.values() if r.user_id == user_id and r.work_date == work_date]
        return max(matches, key=lambda r: r.id) if matches else None

    def get_recent_for_user(self, user_id: int, limit: int):
        items = [r for r in self.records.values() if r.user_id == user_id]
        items.sort(key=lambda r: r.time_in, reverse=True)
        return items[:limit]

    def create_clock_in(self, *, user_id: int, work_date: date, time_in: datetime) -> int:
        self._id += 1
        self.records[self._id] = AttendanceRecord(id=self._id, user_id=user_id, work_date=work_date, time_in=time_in)
        return self._id

    def close_session(self, *, attendance_id: int, time_out: datetime, overtime_comment=None) -> bool:
        rec = self.records[attendance_id]
        if rec.time_out is not None:
            return False
        self.records[attendance_id] = replace(
            rec,
            time_out=time_out,
            is_overtime_requested=bool(overtime_comment),
            overtime_comment=overtime_comment,
        )
        return True

    def set_overtime_approved(self, attendance_id: int, approved: bool) -> bool:
        self.approved[attendance_id] = approved
        return attendance_id in self.records


@pytest.fixture
def repo():
    return InMemoryAttendance()


@pytest.fixture
def service(repo, policy):
    return AttendanceService(repo, policy=policy)


def test_clock_in_then_out(service, repo, make_ctx, fixed_now):
    ctx = make_ctx()
    start = fixed_now.replace(hour=8)
    service.clock_in(ctx, now=start)
    out = service.clock_out(ctx, overtime_comment="  stayed for inventory  ", now=fixed_now)

    assert out.time_out == fixed_now
    assert out.overtime_comment == "stayed for inventory"
    assert out.is_overtime_requested
    assert repo.get_by_id(out.id).time_out == fixed_now


def test_second_clock_in_while_open_is_refused(service, make_ctx, fixed_now):
    ctx = make_ctx()
    service.clock_in(ctx, now=fixed_now)
    with pytest.raises(InvariantError, match="open attendance session"):
        service.clock_in(ctx, now=fixed_now + timedelta(minutes=5))


def test_clock_in_again_after_closing_session(service, repo, make_ctx, fixed_now):
    ctx = make_ctx()
    service.clock_in(ctx, now=fixed_now.replace(hour=8))
    service.clock_out(ctx, now=fixed_now.replace(hour=12))
    second = service.clock_in(ctx, now=fixed_now.replace(hour=13))
    assert second.id == 2
    assert repo.get_for_user_and_date(ctx.user_id, fixed_now.date()).is_open


def test_clock_out_without_clock_in(service, make_ctx, fixed_now):
    with pytest.raises(ValidationError, match="not clocked in"):
        service.clock_out(make_ctx(), now=fixed_now)


def test_clock_out_twice(service, make_ctx, fixed_now):
    ctx = make_ctx()
    service.clock_in(ctx, now=fixed_now.replace(hour=8))
    service.clock_out(ctx, now=fixed_now)
    with pytest.raises(InvariantError, match="already clocked out"):
        service.clock_out(ctx, now=fixed_now + timedelta(minutes=1))


def test_history_is_per_user_and_limited(service, make_ctx, fixed_now):
    alice, bob = make_ctx(1), make_ctx(2)
    for days in range(3):
        day = fixed_now - timedelta(days=days)
        service.clock_in(alice, now=day)
    service.clock_in(bob, now=fixed_now)

    logs = service.history(alice, limit=2)
    assert [r.user_id for r in logs] == [1, 1]
    assert logs[0].time_in == fixed_now
