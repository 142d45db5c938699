from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import DecisionStatus
from .model import LeaveRequest


class LeaveRepository(Protocol):
    def create(self, *, employee_id: int, leave_type: str, start_date: date, end_date: date, reason: str) -> int:
        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def has_overlapping_approved(self, employee_id: int, start_date: date, end_date: date) -> bool:
        raise NotImplementedError

    def list_for_user(self, employee_id: int, *, limit: int) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_all(self, *, status: Optional[DecisionStatus] = None, limit: int) -> Sequence[dict]:
        raise NotImplementedError

    def decide(
        self,
        request_id: int,
        *,
        status: DecisionStatus,
        reviewer_id: int,
        reviewed_at: datetime,
        comment: Optional[str],
        deduct_credits: Optional[Decimal] = None,
    ) -> bool:
        """Move a pending request to ``status``.

        Returns False when the request is no longer pending. When
        ``deduct_credits`` is given the employee's credits are reduced in the
        same transaction.
        """

        raise NotImplementedError

    def revoke(
        self,
        request_id: int,
        *,
        reviewer_id: int,
        reviewed_at: datetime,
        comment: Optional[str],
        restore_credits: Decimal,
    ) -> bool:
        """Move an approved request to revoked and add ``restore_credits`` back.

        Returns False when the request is no longer approved.
        """

        raise NotImplementedError
