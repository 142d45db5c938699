from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Protocol, Sequence

from .model import Ticket


class TicketRepository(Protocol):
    def create(self, values: Mapping[str, Any]) -> int:
        raise NotImplementedError

    def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        raise NotImplementedError

    def update(self, ticket_id: int, values: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def list(self, *, serviced_by: Optional[int] = None, limit: int) -> Sequence[Ticket]:
        raise NotImplementedError

    def export_rows(self, *, start_date: Optional[date] = None, end_date: Optional[date] = None) -> Sequence[dict]:
        """Flat rows joined with store and people names, ordered by report date."""

        raise NotImplementedError
