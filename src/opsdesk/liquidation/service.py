from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..approvals.workflow import TwoLevelWorkflow, ensure_swapped, parse_action, parse_level
from ..auth.context import RequestContext
from ..auth.policy import LEVEL_ACTIONS, Action, PolicyEngine, Resource
from ..cash_advance.repository import CashAdvanceRepository
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import optional_text
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import ApprovalAction, ApprovalLevel, CashAdvanceType, DecisionStatus
from ..core.exceptions import InvariantError, NotFoundError, ValidationError
from ..users.repository import ProfileRepository
from .calculator import parse_items, settle
from .model import OPEN_LIQUIDATION_EXISTS, Liquidation
from .repository import LiquidationRepository

logger = logging.getLogger(__name__)


class LiquidationService:
    def __init__(
        self,
        liquidations: LiquidationRepository,
        advances: CashAdvanceRepository,
        profiles: ProfileRepository,
        *,
        policy: PolicyEngine,
        workflow: Optional[TwoLevelWorkflow] = None,
    ):
        self._liquidations = liquidations
        self._advances = advances
        self._profiles = profiles
        self._policy = policy
        self._workflow = workflow or TwoLevelWorkflow()

    def file(
        self,
        ctx: RequestContext,
        *,
        cash_advance_id: Optional[int],
        store_id: Optional[int],
        ticket_id: Optional[int],
        liquidation_date: str,
        items: Sequence[Mapping[str, Any]],
        remarks: Optional[str] = None,
    ) -> Liquidation:
        self._policy.require(ctx, Action.LIQUIDATION_FILE)

        if not cash_advance_id:
            raise ValidationError("Cash advance is required")
        if not store_id:
            raise ValidationError("Store is required")
        if not ticket_id:
            raise ValidationError("Ticket/Incident number is required")
        parsed_items = parse_items(items or [])
        if not parsed_items:
            raise ValidationError("At least one expense item is required")
        if not liquidation_date:
            raise ValidationError("Liquidation date is required")
        try:
            day = parse_iso_date(str(liquidation_date))
        except ValueError:
            raise ValidationError("Liquidation date must be YYYY-MM-DD")

        advance = self._advances.get_by_id(int(cash_advance_id))
        if (
            not advance
            or advance.requested_by != ctx.user_id
            or advance.type != CashAdvanceType.SUPPORT
            or advance.status != DecisionStatus.APPROVED
            or advance.deleted_at is not None
        ):
            raise ValidationError("Invalid cash advance. Must be an approved support cash advance.")

        if self._liquidations.has_open_for_cash_advance(advance.id):
            raise InvariantError(OPEN_LIQUIDATION_EXISTS)

        totals = settle(advance.amount, parsed_items)
        liquidation_id = self._liquidations.create(
            cash_advance_id=advance.id,
            user_id=ctx.user_id,
            store_id=int(store_id),
            ticket_id=int(ticket_id),
            liquidation_date=day,
            remarks=optional_text(remarks),
            totals=totals,
            items=parsed_items,
        )
        logger.info("Liquidation %s filed for cash advance %s", liquidation_id, advance.id)
        return self._liquidations.get_by_id(liquidation_id)

    def decide(
        self,
        ctx: RequestContext,
        *,
        liquidation_id: int,
        level,
        action: str,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Liquidation:
        approval_action = parse_action(action)
        approval_level = parse_level(level)

        liquidation = self._liquidations.get_by_id(int(liquidation_id))
        if not liquidation:
            raise NotFoundError("Liquidation not found")

        requester = self._profiles.get_by_id(liquidation.user_id)
        resource = Resource(
            owner_id=liquidation.user_id,
            requester_position=requester.position if requester else None,
        )
        self._policy.require(ctx, LEVEL_ACTIONS["liquidation"][approval_level], resource)

        step = self._workflow.transition(
            liquidation.status,
            approval_level,
            approval_action,
            level1_rejected=liquidation.rejected_at_level1,
        )

        now = now or now_local()
        comment = optional_text(comment)
        prefix = "level1" if approval_level == ApprovalLevel.LEVEL1 else "level2"
        updates = {
            "status": step.target,
            f"{prefix}_approved_by": ctx.user_id,
            f"{prefix}_approved_at": now,
        }
        if comment:
            updates[f"{prefix}_reviewer_comment"] = comment
        if step.is_final:
            updates.update({"approved_by": ctx.user_id, "approved_at": now})
            if comment:
                updates["reviewer_comment"] = comment

        ensure_swapped(
            self._liquidations.apply_decision(
                liquidation.id,
                expected={"status": liquidation.status},
                updates=updates,
            )
        )
        verb = "approved" if approval_action == ApprovalAction.APPROVE else "rejected"
        logger.info("Liquidation %s %s at %s by user %s", liquidation.id, verb, prefix, ctx.user_id)
        return self._liquidations.get_by_id(liquidation.id)

    def list_my_requests(self, ctx: RequestContext, *, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[Liquidation]:
        return self._liquidations.list_for_user(ctx.user_id, limit=limit)

    def delete(self, ctx: RequestContext, *, liquidation_id: int) -> None:
        self._policy.require(ctx, Action.LIQUIDATION_DELETE)
        liquidation = self._liquidations.get_by_id(int(liquidation_id))
        if not liquidation or not self._liquidations.delete(liquidation.id):
            raise NotFoundError("Liquidation not found")
        logger.info("Liquidation %s deleted by user %s", liquidation.id, ctx.user_id)
