from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import SlaStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, set_clause
from .model import EDITABLE_FIELDS, TIME_FIELDS, Ticket
from .repository import TicketRepository

WRITABLE_COLUMNS = EDITABLE_FIELDS + ("sla_count_hrs", "sla_status")

_COLUMNS = "id, " + ", ".join(WRITABLE_COLUMNS) + ", created_at, updated_at"


def _row_to_ticket(r: dict) -> Ticket:
    values = {k: r.get(k) for k in WRITABLE_COLUMNS}
    for k in TIME_FIELDS:
        values[k] = normalize_mysql_time(values[k])
    if values["sla_count_hrs"] is not None:
        values["sla_count_hrs"] = Decimal(str(values["sla_count_hrs"]))
    if values["sla_status"]:
        values["sla_status"] = SlaStatus(values["sla_status"])
    else:
        values["sla_status"] = None
    return Ticket(id=int(r["id"]), created_at=r.get("created_at"), updated_at=r.get("updated_at"), **values)


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class MySQLTicketRepository(TicketRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, values: Mapping[str, Any]) -> int:
        cols = [c for c in WRITABLE_COLUMNS if c in values]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO tickets({', '.join(cols)}) VALUES({', '.join(['%s'] * len(cols))})",
                tuple(_db_value(values[c]) for c in cols),
            )
            return int(cur.lastrowid)

    def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM tickets WHERE id=%s", (int(ticket_id),))
            r = fetchone(cur)
            return _row_to_ticket(r) if r else None

    def update(self, ticket_id: int, values: Mapping[str, Any]) -> bool:
        set_sql, params = set_clause(values, WRITABLE_COLUMNS)
        if not set_sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE tickets SET {set_sql} WHERE id=%s",
                (*[_db_value(p) for p in params], int(ticket_id)),
            )
            # MySQL reports 0 rows for a no-op update, so check existence instead
            return cur.rowcount > 0 or self._exists(cur, ticket_id)

    @staticmethod
    def _exists(cur, ticket_id: int) -> bool:
        cur.execute("SELECT 1 AS found FROM tickets WHERE id=%s", (int(ticket_id),))
        return fetchone(cur) is not None

    def list(self, *, serviced_by: Optional[int] = None, limit: int) -> Sequence[Ticket]:
        clauses = ["1=1"]
        params: list[object] = []
        if serviced_by is not None:
            clauses.append("serviced_by=%s")
            params.append(int(serviced_by))
        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM tickets
                WHERE {' AND '.join(clauses)}
                ORDER BY created_at DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_row_to_ticket(r) for r in fetchall(cur)]

    def export_rows(self, *, start_date: Optional[date] = None, end_date: Optional[date] = None) -> Sequence[dict]:
        clauses = ["1=1"]
        params: list[object] = []
        if start_date is not None:
            clauses.append("t.date_reported>=%s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("t.date_reported<=%s")
            params.append(end_date)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT t.*, s.store_code, s.store_name,
                       CONCAT_WS(' ', sv.first_name, sv.last_name) AS serviced_by_name,
                       CONCAT_WS(' ', rp.first_name, rp.last_name) AS reported_by_name
                FROM tickets t
                LEFT JOIN stores s ON s.id = t.store_id
                LEFT JOIN profiles sv ON sv.id = t.serviced_by
                LEFT JOIN profiles rp ON rp.id = t.reported_by
                WHERE {' AND '.join(clauses)}
                ORDER BY t.date_reported DESC, t.id DESC
                """,
                tuple(params),
            )
            rows = fetchall(cur)
            for r in rows:
                for k in TIME_FIELDS:
                    r[k] = normalize_mysql_time(r.get(k))
            return rows
