from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..approvals.workflow import SingleLevelWorkflow, ensure_swapped, parse_action
from ..auth.context import RequestContext
from ..auth.policy import Action, PolicyEngine, Resource
from ..common.datetime_utils import inclusive_days, now_local, parse_iso_date
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_ADMIN_LIST_LIMIT, DEFAULT_LIST_LIMIT
from ..core.enums import DecisionStatus
from ..core.exceptions import InvariantError, NotFoundError, ValidationError
from ..users.repository import ProfileRepository
from .model import LeaveRequest
from .repository import LeaveRepository

logger = logging.getLogger(__name__)


class LeaveService:
    def __init__(
        self,
        leaves: LeaveRepository,
        profiles: ProfileRepository,
        *,
        policy: PolicyEngine,
        workflow: Optional[SingleLevelWorkflow] = None,
    ):
        self._leaves = leaves
        self._profiles = profiles
        self._policy = policy
        self._workflow = workflow or SingleLevelWorkflow()

    def create(
        self,
        ctx: RequestContext,
        *,
        leave_type: str,
        start_date: str,
        end_date: str,
        reason: str,
    ) -> LeaveRequest:
        self._policy.require(ctx, Action.LEAVE_FILE)

        if not leave_type or not start_date or not end_date or not (reason or "").strip():
            raise ValidationError("Missing required fields.")
        try:
            start = parse_iso_date(str(start_date))
            end = parse_iso_date(str(end_date))
        except ValueError:
            raise ValidationError("Dates must be YYYY-MM-DD")
        if end < start:
            raise ValidationError("End date must be after start date.")

        duration = inclusive_days(start, end)
        profile = self._profiles.get_by_id(ctx.user_id)
        credits = profile.leave_credits if profile else Decimal("0")
        if Decimal(duration) > credits:
            raise ValidationError(
                f"Insufficient leave credits. You have {credits} credits but requested {duration} days."
            )

        if self._leaves.has_overlapping_approved(ctx.user_id, start, end):
            raise InvariantError("You already have an approved leave request that overlaps with these dates.")

        request_id = self._leaves.create(
            employee_id=ctx.user_id,
            leave_type=require_non_empty(leave_type, "Leave type"),
            start_date=start,
            end_date=end,
            reason=reason.strip(),
        )
        return self._leaves.get_by_id(request_id)

    def decide(
        self,
        ctx: RequestContext,
        *,
        request_id: int,
        action: str,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        leave_action = parse_action(action)

        req = self._leaves.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("Leave request not found.")

        requester = self._profiles.get_by_id(req.employee_id)
        resource = Resource(owner_id=req.employee_id, requester_position=requester.position if requester else None)
        self._policy.require(ctx, Action.LEAVE_DECIDE, resource)

        new_status = self._workflow.transition(req.status, leave_action)

        deduct = None
        if new_status == DecisionStatus.APPROVED:
            deduct = Decimal(req.duration_days)
            credits = requester.leave_credits if requester else Decimal("0")
            if deduct > credits:
                raise InvariantError(
                    f"Insufficient leave credits. Employee has {credits} credits but requested {req.duration_days} days."
                )

        ensure_swapped(
            self._leaves.decide(
                req.id,
                status=new_status,
                reviewer_id=ctx.user_id,
                reviewed_at=now or now_local(),
                comment=optional_text(comment),
                deduct_credits=deduct,
            )
        )
        logger.info("Leave request %s %s by user %s", req.id, new_status.value, ctx.user_id)
        return self._leaves.get_by_id(req.id)

    def revoke(
        self,
        ctx: RequestContext,
        *,
        request_id: int,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        """Take back an approved leave and give the employee their credits back."""
        req = self._leaves.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("Leave request not found.")

        requester = self._profiles.get_by_id(req.employee_id)
        resource = Resource(owner_id=req.employee_id, requester_position=requester.position if requester else None)
        self._policy.require(ctx, Action.LEAVE_REVOKE, resource)

        if req.status != DecisionStatus.APPROVED:
            raise InvariantError("Only approved leave requests can be revoked.")

        ensure_swapped(
            self._leaves.revoke(
                req.id,
                reviewer_id=ctx.user_id,
                reviewed_at=now or now_local(),
                comment=optional_text(comment) or "Leave revoked",
                restore_credits=Decimal(req.duration_days),
            )
        )
        logger.info("Leave request %s revoked by user %s", req.id, ctx.user_id)
        return self._leaves.get_by_id(req.id)

    def list_my_requests(self, ctx: RequestContext, *, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[LeaveRequest]:
        return self._leaves.list_for_user(ctx.user_id, limit=limit)

    def list_for_review(
        self,
        ctx: RequestContext,
        *,
        status: Optional[str] = None,
        limit: int = DEFAULT_ADMIN_LIST_LIMIT,
    ) -> Sequence[dict]:
        self._policy.require(ctx, Action.LEAVE_REVIEW_LIST)
        wanted = None
        if status:
            try:
                wanted = DecisionStatus(status.strip().lower())
            except ValueError:
                raise ValidationError("Invalid status. Must be one of: pending, approved, rejected, revoked")
        return self._leaves.list_all(status=wanted, limit=limit)
