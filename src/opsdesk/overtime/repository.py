from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import DecisionStatus
from .model import OvertimeRequest


class OvertimeRepository(Protocol):
    def create(
        self,
        *,
        requested_by: int,
        attendance_id: Optional[int],
        overtime_date: date,
        start_time: time,
        end_time: time,
        total_hours: Decimal,
        reason: str,
        auto_approved_at: Optional[datetime] = None,
    ) -> int:
        """Insert a request; ``auto_approved_at`` marks both levels approved by the requester."""

        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[OvertimeRequest]:
        raise NotImplementedError

    def has_active_for_date(self, user_id: int, overtime_date: date) -> bool:
        """True when a pending or approved request exists for the user on that date."""

        raise NotImplementedError

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[OvertimeRequest]:
        raise NotImplementedError

    def list_all(self, *, limit: int) -> Sequence[dict]:
        """Review rows joined with the requester's name and position."""

        raise NotImplementedError

    def apply_decision(self, request_id: int, *, expected: Mapping[str, Any], updates: Mapping[str, Any]) -> bool:
        """Compare-and-swap UPDATE guarded by ``expected`` column values."""

        raise NotImplementedError

    def delete_pending(self, request_id: int) -> bool:
        """Delete the request only while level 1 is still pending."""

        raise NotImplementedError
