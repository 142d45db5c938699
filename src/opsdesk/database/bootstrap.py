"""Schema bootstrap used by ``scripts/init_db.py`` and ``AUTO_INIT_DB``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Mapping, Union

from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)


def split_statements(sql: str) -> Iterator[str]:
    """Yield the statements of a schema file.

    Statements end with ``;`` at the end of a line; ``--`` comment lines are
    dropped. ``CREATE DATABASE`` and ``USE`` are skipped so the configured
    database always wins.
    """
    buf: list[str] = []
    for line in sql.splitlines():
        if line.lstrip().startswith("--"):
            continue
        buf.append(line)
        if line.rstrip().endswith(";"):
            stmt = "\n".join(buf).strip().rstrip(";").strip()
            buf.clear()
            head = stmt.split(None, 2)[:2]
            if [w.upper() for w in head] == ["CREATE", "DATABASE"] or (head and head[0].upper() == "USE"):
                continue
            if stmt:
                yield stmt
    tail = "\n".join(buf).strip()
    if tail:
        yield tail


def apply_schema(db_config: Mapping, *, schema_path: Union[str, Path]) -> None:
    factory = DatabaseConnection(DBConfig.from_dict(db_config))
    database = factory.config.database

    conn = factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(f"CREATE DATABASE IF NOT EXISTS `{database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        cur.execute(f"USE `{database}`")
        count = 0
        for stmt in split_statements(Path(schema_path).read_text(encoding="utf-8")):
            cur.execute(stmt)
            count += 1
        conn.commit()
    finally:
        conn.close()
    logger.info("Applied %d schema statements to %s", count, factory.config.describe())


def ensure_admin_user(db_config: Mapping, *, email: str, password: str) -> int:
    """Create the admin profile, or reset its password and role when it exists."""
    factory = DatabaseConnection(DBConfig.from_dict(db_config))
    conn = factory.connect()
    try:
        cur = conn.cursor(dictionary=True)
        cur.execute("SELECT id FROM profiles WHERE email=%s", (email,))
        row = cur.fetchone()
        password_hash = generate_password_hash(password)
        if row:
            cur.execute(
                "UPDATE profiles SET password_hash=%s, role='admin', is_active=1 WHERE id=%s",
                (password_hash, row["id"]),
            )
            profile_id = int(row["id"])
        else:
            cur.execute(
                "INSERT INTO profiles (email, first_name, last_name, password_hash, role) VALUES (%s,%s,%s,%s,'admin')",
                (email, "System", "Admin", password_hash),
            )
            profile_id = int(cur.lastrowid)
        conn.commit()
    finally:
        conn.close()
    logger.info("Admin profile %s ready (id=%s)", email, profile_id)
    return profile_id


def list_tables(db_config: Mapping) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return sorted(row[0] for row in cur.fetchall())
    finally:
        conn.close()
