from __future__ import annotations

import json

from ..common.serialization import to_jsonable
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .model import ImportLog
from .repository import ImportLogRepository


class MySQLImportLogRepository(ImportLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, log: ImportLog) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO import_logs(
                    import_type, file_name, imported_by, total_rows, success_count, failed_count,
                    errors, started_at, completed_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    log.import_type,
                    log.file_name,
                    log.imported_by,
                    int(log.total_rows),
                    int(log.success_count),
                    int(log.failed_count),
                    json.dumps(to_jsonable(log.errors)),
                    log.started_at,
                    log.completed_at,
                ),
            )
            return int(cur.lastrowid)
