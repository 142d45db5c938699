from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import ApprovalState
from .calculator import LiquidationItem

OPEN_LIQUIDATION_EXISTS = "A liquidation already exists for this cash advance."


@dataclass(frozen=True)
class Liquidation:
    """Domain entity: expense report settling a support cash advance.

    ``status`` holds the combined two-level state directly.
    """

    id: int
    cash_advance_id: int
    user_id: int
    store_id: int
    liquidation_date: date
    total_amount: Decimal
    return_to_company: Decimal
    reimbursement: Decimal
    ticket_id: Optional[int] = None
    remarks: Optional[str] = None
    status: ApprovalState = ApprovalState.PENDING
    level1_approved_by: Optional[int] = None
    level1_approved_at: Optional[datetime] = None
    level1_reviewer_comment: Optional[str] = None
    level2_approved_by: Optional[int] = None
    level2_approved_at: Optional[datetime] = None
    level2_reviewer_comment: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    reviewer_comment: Optional[str] = None
    created_at: Optional[datetime] = None
    items: tuple[LiquidationItem, ...] = field(default_factory=tuple)

    @property
    def rejected_at_level1(self) -> bool:
        return self.status == ApprovalState.REJECTED and self.level2_approved_at is None
