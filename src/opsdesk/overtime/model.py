from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from ..approvals.workflow import derive_state
from ..core.enums import ApprovalState, DecisionStatus


@dataclass(frozen=True)
class OvertimeRequest:
    """Domain entity: an overtime request with two review levels.

    ``status``/``reviewer``/``approved_at`` mirror the final decision for
    older clients that only read a single status.
    """

    id: int
    requested_by: int
    overtime_date: date
    start_time: time
    end_time: time
    total_hours: Decimal
    reason: str
    attendance_id: Optional[int] = None
    level1_status: DecisionStatus = DecisionStatus.PENDING
    level1_reviewer: Optional[int] = None
    level1_reviewed_at: Optional[datetime] = None
    level1_comment: Optional[str] = None
    level2_status: DecisionStatus = DecisionStatus.PENDING
    level2_reviewer: Optional[int] = None
    level2_reviewed_at: Optional[datetime] = None
    level2_comment: Optional[str] = None
    final_status: Optional[DecisionStatus] = None
    status: DecisionStatus = DecisionStatus.PENDING
    reviewer: Optional[int] = None
    approved_at: Optional[datetime] = None
    requested_at: Optional[datetime] = None

    @property
    def state(self) -> ApprovalState:
        return derive_state(
            self.level1_status.value,
            self.level2_status.value,
            self.final_status.value if self.final_status else None,
        )
