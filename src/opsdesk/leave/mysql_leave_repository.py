from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import DecisionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import LeaveRequest
from .repository import LeaveRepository

_COLUMNS = """
    l.id, l.employee_id, l.leave_type, l.start_date, l.end_date, l.reason, l.status,
    l.reviewer_id, l.reviewed_at, l.reviewer_comment, l.created_at
"""


def _row_to_request(r: dict) -> LeaveRequest:
    return LeaveRequest(
        id=int(r["id"]),
        employee_id=int(r["employee_id"]),
        leave_type=r["leave_type"],
        start_date=r["start_date"],
        end_date=r["end_date"],
        reason=r["reason"],
        status=DecisionStatus(r["status"]),
        reviewer_id=r.get("reviewer_id"),
        reviewed_at=r.get("reviewed_at"),
        reviewer_comment=r.get("reviewer_comment"),
        created_at=r.get("created_at"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, employee_id: int, leave_type: str, start_date: date, end_date: date, reason: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(employee_id, leave_type, start_date, end_date, reason, status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(employee_id), leave_type, start_date, end_date, reason, DecisionStatus.PENDING.value),
            )
            return int(cur.lastrowid)

    def get_by_id(self, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM leave_requests l WHERE l.id=%s", (int(request_id),))
            r = fetchone(cur)
            return _row_to_request(r) if r else None

    def has_overlapping_approved(self, employee_id: int, start_date: date, end_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS cnt
                FROM leave_requests
                WHERE employee_id=%s AND status=%s AND start_date<=%s AND end_date>=%s
                """,
                (int(employee_id), DecisionStatus.APPROVED.value, end_date, start_date),
            )
            r = fetchone(cur)
            return bool(r and int(r["cnt"]) > 0)

    def list_for_user(self, employee_id: int, *, limit: int) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM leave_requests l
                WHERE l.employee_id=%s
                ORDER BY l.created_at DESC
                LIMIT %s
                """,
                (int(employee_id), int(limit)),
            )
            return [_row_to_request(r) for r in fetchall(cur)]

    def list_all(self, *, status: Optional[DecisionStatus] = None, limit: int) -> Sequence[dict]:
        clauses = ["1=1"]
        params: list[object] = []
        if status is not None:
            clauses.append("l.status=%s")
            params.append(status.value)
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS},
                       p.first_name, p.last_name, p.email, p.leave_credits, pos.name AS position
                FROM leave_requests l
                JOIN profiles p ON p.id = l.employee_id
                LEFT JOIN positions pos ON pos.id = p.position_id
                WHERE {' AND '.join(clauses)}
                ORDER BY l.created_at DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [
                {
                    "request": _row_to_request(r),
                    "employee_name": f"{r.get('first_name') or ''} {r.get('last_name') or ''}".strip(),
                    "employee_email": r.get("email"),
                    "employee_position": r.get("position"),
                    "leave_credits": r.get("leave_credits"),
                }
                for r in fetchall(cur)
            ]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, reviewer_id=%s, reviewed_at=%s, reviewer_comment=%s
                WHERE id=%s AND status=%s
                """,
                (status.value, int(reviewer_id), reviewed_at, comment, int(request_id), DecisionStatus.PENDING.value),
            )
            if cur.rowcount == 0:
                return False

            if deduct_credits is not None:
                cur.execute(
                    """
                    UPDATE profiles p
                    JOIN leave_requests l ON l.employee_id = p.id
                    SET p.leave_credits = p.leave_credits - %s
                    WHERE l.id=%s
                    """,
                    (deduct_credits, int(request_id)),
                )
            return True

    def revoke(
        self,
        request_id: int,
        *,
        reviewer_id: int,
        reviewed_at: datetime,
        comment: Optional[str],
        restore_credits: Decimal,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, reviewer_id=%s, reviewed_at=%s, reviewer_comment=%s
                WHERE id=%s AND status=%s
                """,
                (
                    DecisionStatus.REVOKED.value,
                    int(reviewer_id),
                    reviewed_at,
                    comment,
                    int(request_id),
                    DecisionStatus.APPROVED.value,
                ),
            )
            if cur.rowcount == 0:
                return False

            cur.execute(
                """
                UPDATE profiles p
                JOIN leave_requests l ON l.employee_id = p.id
                SET p.leave_credits = p.leave_credits + %s
                WHERE l.id=%s
                """,
                (restore_credits, int(request_id)),
            )
            return True
