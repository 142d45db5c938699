from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Profile
from .repository import ProfileRepository

_PROFILE_SELECT = """
    SELECT p.id, p.email, p.first_name, p.last_name, p.password_hash, p.role,
           p.leave_credits, p.is_active, pos.name AS position
    FROM profiles p
    LEFT JOIN positions pos ON pos.id = p.position_id
"""


class MySQLProfileRepository(ProfileRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load(self, cur, where: str, params: tuple) -> Optional[Profile]:
        cur.execute(_PROFILE_SELECT + " WHERE " + where, params)
        row = fetchone(cur)
        if not row:
            return None

        cur.execute(
            """
            SELECT perm.`key` AS perm_key
            FROM profiles p
            JOIN position_permissions pp ON pp.position_id = p.position_id
            JOIN permissions perm ON perm.id = pp.permission_id
            WHERE p.id=%s
            """,
            (int(row["id"]),),
        )
        keys = frozenset(r["perm_key"] for r in fetchall(cur))

        return Profile(
            id=int(row["id"]),
            email=row["email"],
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            password_hash=row["password_hash"],
            role=Role(row["role"]),
            position=row.get("position"),
            permissions=keys,
            leave_credits=Decimal(str(row.get("leave_credits") or 0)),
            is_active=bool(row.get("is_active", True)),
        )

    def get_by_id(self, user_id: int) -> Optional[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._load(cur, "p.id=%s", (int(user_id),))

    def get_by_email(self, email: str) -> Optional[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._load(cur, "LOWER(p.email)=LOWER(%s)", (email,))

    def list_emails_with_permission(self, permission_key: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT p.email
                FROM profiles p
                JOIN position_permissions pp ON pp.position_id = p.position_id
                JOIN permissions perm ON perm.id = pp.permission_id
                WHERE perm.`key`=%s AND p.is_active=1
                ORDER BY p.email
                """,
                (permission_key,),
            )
            return [r["email"] for r in fetchall(cur)]
