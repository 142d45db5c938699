from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..auth.context import RequestContext
from ..auth.policy import Action, PolicyEngine
from ..common.datetime_utils import now_local
from ..common.validators import optional_text
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import InvariantError, ValidationError
from .model import AttendanceRecord
from .repository import AttendanceRepository


class AttendanceService:
    def __init__(self, attendance: AttendanceRepository, *, policy: PolicyEngine):
        self._attendance = attendance
        self._policy = policy

    def clock_in(self, ctx: RequestContext, *, now: Optional[datetime] = None) -> AttendanceRecord:
        self._policy.require(ctx, Action.ATTENDANCE_CLOCK)
        now = now or now_local()
        today = now.date()

        existing = self._attendance.get_for_user_and_date(ctx.user_id, today)
        if existing and existing.is_open:
            raise InvariantError("You already have an open attendance session today")

        attendance_id = self._attendance.create_clock_in(user_id=ctx.user_id, work_date=today, time_in=now)
        return AttendanceRecord(id=attendance_id, user_id=ctx.user_id, work_date=today, time_in=now)

    def clock_out(
        self,
        ctx: RequestContext,
        *,
        overtime_comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        self._policy.require(ctx, Action.ATTENDANCE_CLOCK)
        now = now or now_local()

        record = self._attendance.get_for_user_and_date(ctx.user_id, now.date())
        if not record:
            raise ValidationError("You have not clocked in today")
        if not record.is_open:
            raise InvariantError("You have already clocked out")
        if now < record.time_in:
            raise ValidationError("Clock-out time cannot be before clock-in time")

        comment = optional_text(overtime_comment)
        if not self._attendance.close_session(attendance_id=record.id, time_out=now, overtime_comment=comment):
            raise InvariantError("You have already clocked out")

        return AttendanceRecord(
            id=record.id,
            user_id=record.user_id,
            work_date=record.work_date,
            time_in=record.time_in,
            time_out=now,
            is_overtime_requested=bool(comment),
            overtime_comment=comment,
            is_overtime_approved=record.is_overtime_approved,
        )

    def history(self, ctx: RequestContext, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        return self._attendance.get_recent_for_user(ctx.user_id, max(1, int(limit)))
