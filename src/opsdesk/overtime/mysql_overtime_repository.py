from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import DecisionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, set_clause, where_clause
from .model import OvertimeRequest
from .repository import OvertimeRepository

DECISION_COLUMNS = (
    "level1_status",
    "level1_reviewer",
    "level1_reviewed_at",
    "level1_comment",
    "level2_status",
    "level2_reviewer",
    "level2_reviewed_at",
    "level2_comment",
    "final_status",
    "status",
    "reviewer",
    "approved_at",
)

_COLUMNS = """
    o.id, o.requested_by, o.attendance_id, o.overtime_date, o.start_time, o.end_time,
    o.total_hours, o.reason,
    o.level1_status, o.level1_reviewer, o.level1_reviewed_at, o.level1_comment,
    o.level2_status, o.level2_reviewer, o.level2_reviewed_at, o.level2_comment,
    o.final_status, o.status, o.reviewer, o.approved_at, o.requested_at
"""


def _status(value: Optional[str]) -> Optional[DecisionStatus]:
    return DecisionStatus(value) if value else None


def _row_to_request(r: dict) -> OvertimeRequest:
    return OvertimeRequest(
        id=int(r["id"]),
        requested_by=int(r["requested_by"]),
        attendance_id=r.get("attendance_id"),
        overtime_date=r["overtime_date"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        total_hours=Decimal(str(r["total_hours"])),
        reason=r["reason"],
        level1_status=DecisionStatus(r["level1_status"]),
        level1_reviewer=r.get("level1_reviewer"),
        level1_reviewed_at=r.get("level1_reviewed_at"),
        level1_comment=r.get("level1_comment"),
        level2_status=DecisionStatus(r["level2_status"]),
        level2_reviewer=r.get("level2_reviewer"),
        level2_reviewed_at=r.get("level2_reviewed_at"),
        level2_comment=r.get("level2_comment"),
        final_status=_status(r.get("final_status")),
        status=DecisionStatus(r["status"]),
        reviewer=r.get("reviewer"),
        approved_at=r.get("approved_at"),
        requested_at=r.get("requested_at"),
    )


class MySQLOvertimeRepository(OvertimeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        pending = DecisionStatus.PENDING.value
        approved = DecisionStatus.APPROVED.value
        auto = auto_approved_at is not None
        level_status = approved if auto else pending
        reviewer = int(requested_by) if auto else None

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO overtime_requests(
                    requested_by, attendance_id, overtime_date, start_time, end_time, total_hours, reason,
                    level1_status, level1_reviewer, level1_reviewed_at,
                    level2_status, level2_reviewer, level2_reviewed_at,
                    final_status, status, reviewer, approved_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s, %s,%s,%s, %s,%s,%s, %s,%s,%s,%s)
                """,
                (
                    int(requested_by),
                    attendance_id,
                    overtime_date,
                    start_time,
                    end_time,
                    total_hours,
                    reason,
                    level_status,
                    reviewer,
                    auto_approved_at,
                    level_status,
                    reviewer,
                    auto_approved_at,
                    approved if auto else None,
                    level_status,
                    reviewer,
                    auto_approved_at,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, request_id: int) -> Optional[OvertimeRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM overtime_requests o WHERE o.id=%s", (int(request_id),))
            r = fetchone(cur)
            return _row_to_request(r) if r else None

    def has_active_for_date(self, user_id: int, overtime_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS cnt
                FROM overtime_requests
                WHERE requested_by=%s AND overtime_date=%s
                  AND (final_status IS NULL OR final_status=%s)
                """,
                (int(user_id), overtime_date, DecisionStatus.APPROVED.value),
            )
            r = fetchone(cur)
            return bool(r and int(r["cnt"]) > 0)

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[OvertimeRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM overtime_requests o
                WHERE o.requested_by=%s
                ORDER BY o.overtime_date DESC, o.id DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_row_to_request(r) for r in fetchall(cur)]

    def list_all(self, *, limit: int) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS},
                       p.first_name, p.last_name, p.email, pos.name AS position
                FROM overtime_requests o
                JOIN profiles p ON p.id = o.requested_by
                LEFT JOIN positions pos ON pos.id = p.position_id
                ORDER BY o.requested_at DESC
                LIMIT %s
                """,
                (int(limit),),
            )
            rows = []
            for r in fetchall(cur):
                rows.append(
                    {
                        "request": _row_to_request(r),
                        "employee_name": f"{r.get('first_name') or ''} {r.get('last_name') or ''}".strip(),
                        "employee_email": r.get("email"),
                        "employee_position": r.get("position"),
                    }
                )
            return rows

    def apply_decision(self, request_id: int, *, expected: Mapping[str, Any], updates: Mapping[str, Any]) -> bool:
        set_sql, set_params = set_clause(updates, DECISION_COLUMNS)
        if not set_sql:
            return False
        guard_sql, guard_params = where_clause(expected)
        params = [v.value if isinstance(v, DecisionStatus) else v for v in set_params]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE overtime_requests SET {set_sql} WHERE id=%s AND {guard_sql}",
                (*params, int(request_id), *guard_params),
            )
            return cur.rowcount > 0

    def delete_pending(self, request_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM overtime_requests WHERE id=%s AND level1_status=%s",
                (int(request_id), DecisionStatus.PENDING.value),
            )
            return cur.rowcount > 0
