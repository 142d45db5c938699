from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        """Latest session of the user on that date."""

        raise NotImplementedError

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def create_clock_in(self, *, user_id: int, work_date: date, time_in: datetime) -> int:
        raise NotImplementedError

    def close_session(
        self,
        *,
        attendance_id: int,
        time_out: datetime,
        overtime_comment: Optional[str] = None,
    ) -> bool:
        """Set time_out only while the session is still open."""

        raise NotImplementedError

    def set_overtime_approved(self, attendance_id: int, approved: bool) -> bool:
        raise NotImplementedError
