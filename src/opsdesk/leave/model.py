from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import inclusive_days
from ..core.enums import DecisionStatus


@dataclass(frozen=True)
class LeaveRequest:
    id: int
    employee_id: int
    leave_type: str
    start_date: date
    end_date: date
    reason: str
    status: DecisionStatus = DecisionStatus.PENDING
    reviewer_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    reviewer_comment: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def duration_days(self) -> int:
        return inclusive_days(self.start_date, self.end_date)
