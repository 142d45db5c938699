from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import CashAdvanceType, DecisionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, set_clause, where_clause
from .model import CashAdvance
from .repository import CashAdvanceRepository

DECISION_COLUMNS = (
    "status",
    "level1_status",
    "level1_approved_by",
    "level1_date_approved",
    "level1_comment",
    "level2_status",
    "level2_approved_by",
    "level2_date_approved",
    "level2_comment",
    "approved_by",
    "date_approved",
    "rejection_reason",
)

_COLUMNS = (
    "id, type, amount, purpose, requested_by, date_requested, created_at, deleted_at, deleted_by, "
    + ", ".join(DECISION_COLUMNS)
)


def _row_to_advance(r: dict) -> CashAdvance:
    return CashAdvance(
        id=int(r["id"]),
        type=CashAdvanceType(r["type"]),
        amount=Decimal(str(r["amount"])),
        purpose=r.get("purpose"),
        requested_by=int(r["requested_by"]),
        date_requested=r["date_requested"],
        status=DecisionStatus(r["status"]),
        level1_status=DecisionStatus(r["level1_status"]),
        level1_approved_by=r.get("level1_approved_by"),
        level1_date_approved=r.get("level1_date_approved"),
        level1_comment=r.get("level1_comment"),
        level2_status=DecisionStatus(r["level2_status"]),
        level2_approved_by=r.get("level2_approved_by"),
        level2_date_approved=r.get("level2_date_approved"),
        level2_comment=r.get("level2_comment"),
        approved_by=r.get("approved_by"),
        date_approved=r.get("date_approved"),
        rejection_reason=r.get("rejection_reason"),
        created_at=r.get("created_at"),
        deleted_at=r.get("deleted_at"),
        deleted_by=r.get("deleted_by"),
    )


class MySQLCashAdvanceRepository(CashAdvanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        advance_type: CashAdvanceType,
        amount: Decimal,
        purpose: Optional[str],
        requested_by: int,
        date_requested: date,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO cash_advances(type, amount, purpose, requested_by, date_requested, status, level1_status, level2_status)
                VALUES(%s,%s,%s,%s,%s,'pending','pending','pending')
                """,
                (advance_type.value, amount, purpose, int(requested_by), date_requested),
            )
            return int(cur.lastrowid)

    def get_by_id(self, advance_id: int) -> Optional[CashAdvance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM cash_advances WHERE id=%s", (int(advance_id),))
            r = fetchone(cur)
            return _row_to_advance(r) if r else None

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[CashAdvance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM cash_advances
                WHERE requested_by=%s AND deleted_at IS NULL
                ORDER BY date_requested DESC, id DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_row_to_advance(r) for r in fetchall(cur)]

    def apply_decision(self, advance_id: int, *, expected: Mapping[str, Any], updates: Mapping[str, Any]) -> bool:
        set_sql, set_params = set_clause(updates, DECISION_COLUMNS)
        if not set_sql:
            return False
        guard_sql, guard_params = where_clause(expected)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE cash_advances SET {set_sql} WHERE id=%s AND {guard_sql}",
                (*set_params, int(advance_id), *guard_params),
            )
            return cur.rowcount > 0

    def soft_delete(self, advance_id: int, *, deleted_by: int, deleted_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE cash_advances SET deleted_at=%s, deleted_by=%s WHERE id=%s AND deleted_at IS NULL",
                (deleted_at, int(deleted_by), int(advance_id)),
            )
            return cur.rowcount > 0
