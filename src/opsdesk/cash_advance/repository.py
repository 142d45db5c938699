from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import CashAdvanceType
from .model import CashAdvance


class CashAdvanceRepository(Protocol):
    def create(
        self,
        *,
        advance_type: CashAdvanceType,
        amount: Decimal,
        purpose: Optional[str],
        requested_by: int,
        date_requested: date,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, advance_id: int) -> Optional[CashAdvance]:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[CashAdvance]:
        """The user's advances, soft-deleted ones excluded."""

        raise NotImplementedError

    def apply_decision(self, advance_id: int, *, expected: Mapping[str, Any], updates: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def soft_delete(self, advance_id: int, *, deleted_by: int, deleted_at: datetime) -> bool:
        """Stamp ``deleted_at``; False when the advance was already deleted."""

        raise NotImplementedError
