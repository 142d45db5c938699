from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    id, user_id, work_date, time_in, time_out,
    is_overtime_requested, overtime_comment, is_overtime_approved
"""


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        id=int(r["id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        time_in=r["time_in"],
        time_out=r.get("time_out"),
        is_overtime_requested=bool(r.get("is_overtime_requested")),
        overtime_comment=r.get("overtime_comment"),
        is_overtime_approved=bool(r.get("is_overtime_approved")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE user_id=%s AND work_date=%s
                ORDER BY time_in DESC
                LIMIT 1
                """,
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE user_id=%s
                ORDER BY work_date DESC, time_in DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def create_clock_in(self, *, user_id: int, work_date: date, time_in: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO attendance(user_id, work_date, time_in) VALUES(%s,%s,%s)",
                (int(user_id), work_date, time_in),
            )
            return int(cur.lastrowid)

    def close_session(
        self,
        *,
        attendance_id: int,
        time_out: datetime,
        overtime_comment: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET time_out=%s, is_overtime_requested=%s, overtime_comment=%s
                WHERE id=%s AND time_out IS NULL
                """,
                (time_out, 1 if overtime_comment else 0, overtime_comment, int(attendance_id)),
            )
            return cur.rowcount > 0

    def set_overtime_approved(self, attendance_id: int, approved: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance SET is_overtime_approved=%s WHERE id=%s",
                (1 if approved else 0, int(attendance_id)),
            )
            return cur.rowcount > 0
