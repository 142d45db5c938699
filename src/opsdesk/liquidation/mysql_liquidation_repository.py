from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import ApprovalState
from ..core.exceptions import InvariantError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, set_clause, where_clause
from .calculator import EXPENSE_FIELDS, LiquidationItem, LiquidationTotals
from .model import OPEN_LIQUIDATION_EXISTS, Liquidation
from .repository import LiquidationRepository

DECISION_COLUMNS = (
    "status",
    "level1_approved_by",
    "level1_approved_at",
    "level1_reviewer_comment",
    "level2_approved_by",
    "level2_approved_at",
    "level2_reviewer_comment",
    "approved_by",
    "approved_at",
    "reviewer_comment",
)

_COLUMNS = (
    "id, cash_advance_id, user_id, store_id, ticket_id, liquidation_date, total_amount, "
    "return_to_company, reimbursement, remarks, created_at, " + ", ".join(DECISION_COLUMNS)
)


def _dec(value) -> Decimal:
    return Decimal(str(value if value is not None else 0))


def _row_to_item(r: dict) -> LiquidationItem:
    return LiquidationItem(
        from_destination=r.get("from_destination") or "",
        to_destination=r.get("to_destination") or "",
        remarks=r.get("remarks") or "",
        **{f: _dec(r.get(f)) for f in EXPENSE_FIELDS},
    )


def _row_to_liquidation(r: dict, items: Sequence[LiquidationItem] = ()) -> Liquidation:
    return Liquidation(
        id=int(r["id"]),
        cash_advance_id=int(r["cash_advance_id"]),
        user_id=int(r["user_id"]),
        store_id=int(r["store_id"]),
        ticket_id=r.get("ticket_id"),
        liquidation_date=r["liquidation_date"],
        total_amount=_dec(r["total_amount"]),
        return_to_company=_dec(r.get("return_to_company")),
        reimbursement=_dec(r.get("reimbursement")),
        remarks=r.get("remarks"),
        status=ApprovalState(r["status"]),
        level1_approved_by=r.get("level1_approved_by"),
        level1_approved_at=r.get("level1_approved_at"),
        level1_reviewer_comment=r.get("level1_reviewer_comment"),
        level2_approved_by=r.get("level2_approved_by"),
        level2_approved_at=r.get("level2_approved_at"),
        level2_reviewer_comment=r.get("level2_reviewer_comment"),
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
        reviewer_comment=r.get("reviewer_comment"),
        created_at=r.get("created_at"),
        items=tuple(items),
    )


class MySQLLiquidationRepository(LiquidationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            # Lock the advance row so concurrent filings for it serialize here.
            cur.execute("SELECT id FROM cash_advances WHERE id=%s FOR UPDATE", (int(cash_advance_id),))
            if not fetchone(cur):
                raise NotFoundError("Cash advance request not found.")
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM liquidations WHERE cash_advance_id=%s AND status<>%s",
                (int(cash_advance_id), ApprovalState.REJECTED.value),
            )
            r = fetchone(cur)
            if r and int(r["cnt"]) > 0:
                raise InvariantError(OPEN_LIQUIDATION_EXISTS)

            cur.execute(
                """
                INSERT INTO liquidations(
                    cash_advance_id, user_id, store_id, ticket_id, liquidation_date,
                    total_amount, return_to_company, reimbursement, remarks, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(cash_advance_id),
                    int(user_id),
                    int(store_id),
                    ticket_id,
                    liquidation_date,
                    totals.total_amount,
                    totals.return_to_company,
                    totals.reimbursement,
                    remarks,
                    ApprovalState.PENDING.value,
                ),
            )
            liquidation_id = int(cur.lastrowid)

            cur.executemany(
                f"""
                INSERT INTO liquidation_items(
                    liquidation_id, from_destination, to_destination, {', '.join(EXPENSE_FIELDS)}, total, remarks
                )
                VALUES(%s,%s,%s,{', '.join(['%s'] * len(EXPENSE_FIELDS))},%s,%s)
                """,
                [
                    (
                        liquidation_id,
                        i.from_destination,
                        i.to_destination,
                        *[getattr(i, f) for f in EXPENSE_FIELDS],
                        i.total,
                        i.remarks,
                    )
                    for i in items
                ],
            )
            return liquidation_id

    def get_by_id(self, liquidation_id: int) -> Optional[Liquidation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM liquidations WHERE id=%s", (int(liquidation_id),))
            r = fetchone(cur)
            if not r:
                return None
            cur.execute(
                f"""
                SELECT from_destination, to_destination, {', '.join(EXPENSE_FIELDS)}, remarks
                FROM liquidation_items
                WHERE liquidation_id=%s
                ORDER BY id
                """,
                (int(liquidation_id),),
            )
            items = [_row_to_item(i) for i in fetchall(cur)]
            return _row_to_liquidation(r, items)

    def has_open_for_cash_advance(self, cash_advance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM liquidations WHERE cash_advance_id=%s AND status<>%s",
                (int(cash_advance_id), ApprovalState.REJECTED.value),
            )
            r = fetchone(cur)
            return bool(r and int(r["cnt"]) > 0)

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[Liquidation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM liquidations
                WHERE user_id=%s
                ORDER BY liquidation_date DESC, id DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_row_to_liquidation(r) for r in fetchall(cur)]

    def apply_decision(self, liquidation_id: int, *, expected: Mapping[str, Any], updates: Mapping[str, Any]) -> bool:
        set_sql, set_params = set_clause(updates, DECISION_COLUMNS)
        if not set_sql:
            return False
        guard_sql, guard_params = where_clause(expected)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE liquidations SET {set_sql} WHERE id=%s AND {guard_sql}",
                (*set_params, int(liquidation_id), *guard_params),
            )
            return cur.rowcount > 0

    def delete(self, liquidation_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM liquidation_items WHERE liquidation_id=%s", (int(liquidation_id),))
            cur.execute("DELETE FROM liquidations WHERE id=%s", (int(liquidation_id),))
            return cur.rowcount > 0
