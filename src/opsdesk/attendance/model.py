from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one clock-in/clock-out session."""

    id: int
    user_id: int
    work_date: date
    time_in: datetime
    time_out: Optional[datetime] = None
    is_overtime_requested: bool = False
    overtime_comment: Optional[str] = None
    is_overtime_approved: bool = False

    @property
    def is_open(self) -> bool:
        return self.time_out is None
