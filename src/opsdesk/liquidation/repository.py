from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Protocol, Sequence

from .calculator import LiquidationItem, LiquidationTotals
from .model import Liquidation


class LiquidationRepository(Protocol):
    def create(
        self,
        *,
        cash_advance_id: int,
        user_id: int,
        store_id: int,
        ticket_id: Optional[int],
        liquidation_date: date,
        remarks: Optional[str],
        totals: LiquidationTotals,
        items: Sequence[LiquidationItem],
    ) -> int:
        """Insert the liquidation and its items in one transaction.

        Raises InvariantError when a non-rejected liquidation already exists
        for the advance at insert time.
        """

        raise NotImplementedError

    def get_by_id(self, liquidation_id: int) -> Optional[Liquidation]:
        raise NotImplementedError

    def delete(self, liquidation_id: int) -> bool:
        """Remove the liquidation and its items; False when it no longer exists."""

        raise NotImplementedError

    def has_open_for_cash_advance(self, cash_advance_id: int) -> bool:
        """True when a pending, level-1-approved or approved liquidation exists."""

        raise NotImplementedError

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[Liquidation]:
        raise NotImplementedError

    def apply_decision(self, liquidation_id: int, *, expected: Mapping[str, Any], updates: Mapping[str, Any]) -> bool:
        raise NotImplementedError
