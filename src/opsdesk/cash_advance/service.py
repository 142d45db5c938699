from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..approvals.workflow import TwoLevelWorkflow, ensure_swapped, parse_action, parse_level
from ..auth.context import RequestContext
from ..auth.policy import LEVEL_ACTIONS, Action, PolicyEngine, Resource
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import optional_text, require_one_of, require_positive_amount
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import ApprovalAction, ApprovalLevel, CashAdvanceType, DecisionStatus
from ..core.exceptions import InvariantError, NotFoundError, ValidationError
from ..notifications.email import EmailNotifier, cash_advance_email
from ..users.model import Profile
from ..users.repository import ProfileRepository
from .model import CashAdvance
from .repository import CashAdvanceRepository

logger = logging.getLogger(__name__)

LEVEL1_PERMISSION = "approve_cash_advance_level1"
LEVEL2_PERMISSION = "approve_cash_advance_level2"


class CashAdvanceService:
    def __init__(
        self,
        advances: CashAdvanceRepository,
        profiles: ProfileRepository,
        *,
        policy: PolicyEngine,
        notifier: Optional[EmailNotifier] = None,
        workflow: Optional[TwoLevelWorkflow] = None,
    ):
        self._advances = advances
        self._profiles = profiles
        self._policy = policy
        self._notifier = notifier
        self._workflow = workflow or TwoLevelWorkflow()

    def file_request(
        self,
        ctx: RequestContext,
        *,
        advance_type: str,
        amount,
        date_requested: str,
        purpose: Optional[str] = None,
    ) -> CashAdvance:
        self._policy.require(ctx, Action.CASH_ADVANCE_FILE)

        kind = CashAdvanceType(require_one_of(advance_type, "cash advance type", tuple(t.value for t in CashAdvanceType)))
        value = require_positive_amount(amount)
        if not date_requested:
            raise ValidationError("Please provide a date.")
        try:
            day = parse_iso_date(str(date_requested))
        except ValueError:
            raise ValidationError("Date must be YYYY-MM-DD")

        advance_id = self._advances.create(
            advance_type=kind,
            amount=value,
            purpose=optional_text(purpose),
            requested_by=ctx.user_id,
            date_requested=day,
        )
        created = self._advances.get_by_id(advance_id)
        self._notify_approvers(created, LEVEL1_PERMISSION, ctx.full_name or ctx.email, "A new cash advance request needs your Level 1 review.")
        return created

    def decide(
        self,
        ctx: RequestContext,
        *,
        advance_id: int,
        action: str,
        level: Optional[str] = None,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CashAdvance:
        approval_action = parse_action(action)
        approval_level = parse_level(level or ApprovalLevel.LEVEL1.value)

        advance = self._advances.get_by_id(int(advance_id))
        if not advance or advance.deleted_at is not None:
            raise NotFoundError("Cash advance request not found.")

        requester = self._profiles.get_by_id(advance.requested_by)
        resource = Resource(
            owner_id=advance.requested_by,
            requester_position=requester.position if requester else None,
        )
        self._policy.require(ctx, LEVEL_ACTIONS["cash_advance"][approval_level], resource)

        step = self._workflow.transition(
            advance.state,
            approval_level,
            approval_action,
            level1_rejected=advance.level1_status == DecisionStatus.REJECTED,
        )

        now = now or now_local()
        comment = optional_text(comment)
        decision = step.decision

        if approval_level == ApprovalLevel.LEVEL1:
            updates = {
                "level1_status": decision,
                "level1_approved_by": ctx.user_id,
                "level1_date_approved": now,
                "level1_comment": comment,
            }
            if approval_action == ApprovalAction.REJECT:
                updates["rejection_reason"] = comment or "Rejected at Level 1"
        else:
            updates = {
                "level2_status": decision,
                "level2_approved_by": ctx.user_id,
                "level2_date_approved": now,
                "level2_comment": comment,
            }
            if approval_action == ApprovalAction.REJECT and comment:
                updates["rejection_reason"] = comment
        if step.is_final:
            updates.update({"status": decision, "approved_by": ctx.user_id, "date_approved": now})

        expected = {
            "status": advance.status,
            "level1_status": advance.level1_status,
            "level2_status": advance.level2_status,
            "deleted_at": None,
        }
        ensure_swapped(self._advances.apply_decision(advance.id, expected=expected, updates=updates))
        logger.info(
            "Cash advance %s %s at %s by user %s",
            advance.id,
            decision.value,
            approval_level.value,
            ctx.user_id,
        )

        updated = self._advances.get_by_id(advance.id)
        requester_name = requester.full_name if requester else "Unknown"
        if step.is_final:
            self._notify_requester(updated, requester, comment)
        elif approval_action == ApprovalAction.APPROVE:
            self._notify_approvers(
                updated,
                LEVEL2_PERMISSION,
                requester_name,
                f"A cash advance request was approved at Level 1 by {ctx.full_name or ctx.email} and needs your Level 2 review.",
            )
        return updated

    def list_my_requests(self, ctx: RequestContext, *, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[CashAdvance]:
        return self._advances.list_for_user(ctx.user_id, limit=limit)

    def delete(self, ctx: RequestContext, *, advance_id: int, now: Optional[datetime] = None) -> None:
        """Soft-delete an advance; the row stays for audit with ``deleted_at`` set."""
        advance = self._advances.get_by_id(int(advance_id))
        if not advance:
            raise NotFoundError("Cash advance request not found.")

        requester = self._profiles.get_by_id(advance.requested_by)
        resource = Resource(
            owner_id=advance.requested_by,
            requester_position=requester.position if requester else None,
        )
        self._policy.require(ctx, Action.CASH_ADVANCE_DELETE, resource)

        if advance.deleted_at is not None:
            raise InvariantError("Cash advance request is already deleted")
        if not self._advances.soft_delete(advance.id, deleted_by=ctx.user_id, deleted_at=now or now_local()):
            raise InvariantError("Cash advance request is already deleted")
        logger.info("Cash advance %s deleted by user %s", advance.id, ctx.user_id)

    def _notify_approvers(self, advance: CashAdvance, permission_key: str, requester_name: str, headline: str) -> None:
        if not self._notifier or not advance:
            return
        try:
            recipients = self._profiles.list_emails_with_permission(permission_key)
            body = cash_advance_email(
                headline=headline,
                requester_name=requester_name,
                amount=advance.amount,
                advance_type=advance.type.value,
                purpose=advance.purpose,
            )
            self._notifier.send(recipients, f"Cash advance request #{advance.id}", body)
        except Exception:
            logger.exception("Failed to notify approvers for cash advance %s", advance.id)

    def _notify_requester(self, advance: CashAdvance, requester: Optional[Profile], comment: Optional[str]) -> None:
        if not self._notifier or not advance or not requester:
            return
        try:
            body = cash_advance_email(
                headline=f"Your cash advance request was {advance.status.value}.",
                requester_name=requester.full_name,
                amount=advance.amount,
                advance_type=advance.type.value,
                purpose=advance.purpose,
                comment=comment,
            )
            self._notifier.send([requester.email], f"Cash advance request #{advance.id} {advance.status.value}", body)
        except Exception:
            logger.exception("Failed to notify requester for cash advance %s", advance.id)
