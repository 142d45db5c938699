from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ..approvals.workflow import TwoLevelWorkflow, ensure_swapped, parse_action, parse_level
from ..attendance.repository import AttendanceRepository
from ..auth.context import RequestContext
from ..auth.policy import LEVEL_ACTIONS, Action, PolicyEngine, Resource
from ..common.datetime_utils import now_local, parse_clock_time, parse_iso_date, span_hours
from ..common.validators import optional_text
from ..core.constants import (
    DEFAULT_ADMIN_LIST_LIMIT,
    DEFAULT_LIST_LIMIT,
    MANAGING_DIRECTOR,
    OVERTIME_DIRECTOR_ONLY_POSITIONS,
)
from ..core.enums import ApprovalLevel, DecisionStatus
from ..core.exceptions import InvariantError, NotFoundError, ValidationError
from .model import OvertimeRequest
from .repository import OvertimeRepository

logger = logging.getLogger(__name__)


class OvertimeService:
    def __init__(
        self,
        overtime: OvertimeRepository,
        attendance: AttendanceRepository,
        *,
        policy: PolicyEngine,
        auto_approve_positions: Iterable[str] = (),
        workflow: Optional[TwoLevelWorkflow] = None,
    ):
        self._overtime = overtime
        self._attendance = attendance
        self._policy = policy
        self._auto_approve = {p.strip().lower() for p in auto_approve_positions}
        self._workflow = workflow or TwoLevelWorkflow()

    def file_request(
        self,
        ctx: RequestContext,
        *,
        overtime_date: str,
        start_time: str,
        end_time: str,
        reason: str,
        attendance_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> OvertimeRequest:
        self._policy.require(ctx, Action.OVERTIME_FILE)

        if not overtime_date or not start_time or not end_time or not (reason or "").strip():
            raise ValidationError("Please provide date, start time, end time, and reason.")
        try:
            day = parse_iso_date(str(overtime_date))
        except ValueError:
            raise ValidationError("Overtime date must be YYYY-MM-DD")
        start = parse_clock_time(str(start_time), "Start time")
        end = parse_clock_time(str(end_time), "End time")

        total_hours = span_hours(start, end)
        if total_hours <= 0:
            raise ValidationError("End time must be different from start time")

        if self._overtime.has_active_for_date(ctx.user_id, day):
            raise InvariantError(
                "You already have a pending or approved overtime request for this date. "
                "You can only submit a new request if all previous requests for this date were rejected."
            )

        if attendance_id is None:
            record = self._attendance.get_for_user_and_date(ctx.user_id, day)
            attendance_id = record.id if record else None

        now = now or now_local()
        auto_approved = (ctx.position or "").strip().lower() in self._auto_approve
        request_id = self._overtime.create(
            requested_by=ctx.user_id,
            attendance_id=attendance_id,
            overtime_date=day,
            start_time=start,
            end_time=end,
            total_hours=Decimal(str(total_hours)),
            reason=reason.strip(),
            auto_approved_at=now if auto_approved else None,
        )
        created = self._overtime.get_by_id(request_id)
        if auto_approved and created:
            logger.info("Overtime request %s auto-approved for %s", request_id, ctx.email)
            self._sync_attendance(created, approved=True)
        return created

    def decide(
        self,
        ctx: RequestContext,
        *,
        request_id: int,
        level: str,
        action: str,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OvertimeRequest:
        approval_level = parse_level(level)
        approval_action = parse_action(action)

        req = self._overtime.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("Overtime request not found.")

        self._policy.require(ctx, LEVEL_ACTIONS["overtime"][approval_level], Resource(owner_id=req.requested_by))

        step = self._workflow.transition(
            req.state,
            approval_level,
            approval_action,
            level1_rejected=req.level1_status == DecisionStatus.REJECTED,
        )

        now = now or now_local()
        comment = optional_text(comment)
        decision = step.decision

        if approval_level == ApprovalLevel.LEVEL1:
            updates = {
                "level1_status": decision,
                "level1_reviewer": ctx.user_id,
                "level1_reviewed_at": now,
                "level1_comment": comment,
            }
        else:
            updates = {
                "level2_status": decision,
                "level2_reviewer": ctx.user_id,
                "level2_reviewed_at": now,
                "level2_comment": comment,
            }
        if step.is_final:
            updates.update({"final_status": decision, "status": decision, "reviewer": ctx.user_id, "approved_at": now})

        expected = {
            "level1_status": req.level1_status,
            "level2_status": req.level2_status,
            "final_status": req.final_status,
        }
        ensure_swapped(self._overtime.apply_decision(req.id, expected=expected, updates=updates))

        if step.is_final:
            self._sync_attendance(req, approved=decision == DecisionStatus.APPROVED)

        logger.info(
            "Overtime request %s %s at %s by user %s",
            req.id,
            decision.value,
            approval_level.value,
            ctx.user_id,
        )
        return self._overtime.get_by_id(req.id)

    def list_my_requests(self, ctx: RequestContext, *, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[OvertimeRequest]:
        return self._overtime.list_for_user(ctx.user_id, limit=limit)

    def list_for_review(
        self,
        ctx: RequestContext,
        *,
        state: Optional[str] = None,
        limit: int = DEFAULT_ADMIN_LIST_LIMIT,
    ) -> Sequence[dict]:
        self._policy.require(ctx, Action.OVERTIME_REVIEW_LIST)
        rows = self._overtime.list_all(limit=limit)
        if (ctx.position or "").strip().lower() != MANAGING_DIRECTOR.lower():
            hidden = {p.lower() for p in OVERTIME_DIRECTOR_ONLY_POSITIONS}
            rows = [r for r in rows if (r.get("employee_position") or "").strip().lower() not in hidden]
        if state:
            wanted = state.strip().lower()
            rows = [r for r in rows if r["request"].state.value == wanted]
        return rows

    def withdraw(self, ctx: RequestContext, *, request_id: int) -> None:
        """Delete the caller's own request while level 1 has not reviewed it."""
        req = self._overtime.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("Overtime request not found.")
        self._policy.require(ctx, Action.OVERTIME_WITHDRAW, Resource(owner_id=req.requested_by))
        if req.level1_status != DecisionStatus.PENDING:
            raise InvariantError("Cannot delete overtime request. It has already been reviewed.")

        ensure_swapped(self._overtime.delete_pending(req.id))
        logger.info("Overtime request %s withdrawn by user %s", req.id, ctx.user_id)

    def _sync_attendance(self, req: OvertimeRequest, *, approved: bool) -> None:
        """Mirror the final decision onto the attendance record; failures are only logged."""
        try:
            attendance_id = req.attendance_id
            if attendance_id is None:
                record = self._attendance.get_for_user_and_date(req.requested_by, req.overtime_date)
                attendance_id = record.id if record else None
            if attendance_id is None:
                return
            self._attendance.set_overtime_approved(attendance_id, approved)
        except Exception:
            logger.exception("Failed to update attendance for overtime request %s", req.id)
