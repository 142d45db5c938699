"""Small helpers shared by the mysql-connector repositories."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import time, timedelta
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield ``(conn, cursor)``; commit when the block succeeds, roll back otherwise."""
    conn = conn_factory.connect()
    cur = conn.cursor(dictionary=dictionary)
    try:
        yield conn, cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


def fetchone(cur) -> Optional[dict]:
    return cur.fetchone() or None


def fetchall(cur) -> list[dict]:
    return list(cur.fetchall() or [])


def _param(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def set_clause(updates: Mapping[str, Any], allowed: Iterable[str]) -> tuple[str, list]:
    """``col=%s, ...`` for the whitelisted columns present in ``updates``."""
    cols = [c for c in allowed if c in updates]
    return ", ".join(f"{c}=%s" for c in cols), [_param(updates[c]) for c in cols]


def where_clause(expected: Mapping[str, Any]) -> tuple[str, list]:
    """Guard of a compare-and-swap UPDATE. None compares with IS NULL."""
    parts = [f"{col} IS NULL" if value is None else f"{col}=%s" for col, value in expected.items()]
    params = [_param(v) for v in expected.values() if v is not None]
    return " AND ".join(parts) or "1=1", params


def normalize_mysql_time(value: Any) -> Optional[time]:
    """TIME columns come back as ``timedelta`` from mysql-connector."""
    if value is None or isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds()) % 86400
        return time(seconds // 3600, seconds % 3600 // 60, seconds % 60)
    if isinstance(value, str):
        return time.fromisoformat(value.strip())
    raise TypeError(f"Unsupported MySQL TIME value: {value!r}")
