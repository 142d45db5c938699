from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..approvals.workflow import derive_state
from ..core.enums import ApprovalState, CashAdvanceType, DecisionStatus


@dataclass(frozen=True)
class CashAdvance:
    id: int
    type: CashAdvanceType
    amount: Decimal
    requested_by: int
    date_requested: date
    purpose: Optional[str] = None
    status: DecisionStatus = DecisionStatus.PENDING
    level1_status: DecisionStatus = DecisionStatus.PENDING
    level1_approved_by: Optional[int] = None
    level1_date_approved: Optional[datetime] = None
    level1_comment: Optional[str] = None
    level2_status: DecisionStatus = DecisionStatus.PENDING
    level2_approved_by: Optional[int] = None
    level2_date_approved: Optional[datetime] = None
    level2_comment: Optional[str] = None
    approved_by: Optional[int] = None
    date_approved: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[int] = None

    @property
    def state(self) -> ApprovalState:
        final = self.status.value if self.status != DecisionStatus.PENDING else None
        return derive_state(self.level1_status.value, self.level2_status.value, final)
