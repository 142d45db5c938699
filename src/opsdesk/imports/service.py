from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..auth.context import RequestContext
from ..common.datetime_utils import now_local
from ..core.constants import IMPORT_BATCH_SIZE, IMPORT_MAX_ROWS
from .excel import ColumnSchema, ImportResult, Upload, read_workbook, run_rows
from .model import ImportLog
from .repository import ImportLogRepository

logger = logging.getLogger(__name__)


class ImportRunner:
    """Run one Excel import end to end and record it in the import log."""

    def __init__(
        self,
        logs: Optional[ImportLogRepository] = None,
        *,
        batch_size: int = IMPORT_BATCH_SIZE,
        max_rows: int = IMPORT_MAX_ROWS,
    ):
        self._logs = logs
        self._batch_size = int(batch_size)
        self._max_rows = int(max_rows)

    def run(
        self,
        ctx: RequestContext,
        *,
        import_type: str,
        upload: Upload,
        schema: ColumnSchema,
        handle_row: Callable[[int, dict], None],
        now: Optional[datetime] = None,
    ) -> ImportResult:
        started_at = now or now_local()
        df = read_workbook(upload)
        result = run_rows(df, schema, handle_row, batch_size=self._batch_size, max_rows=self._max_rows)
        logger.info(
            "%s import of %s by %s: %d ok, %d failed, %d blank",
            import_type,
            upload.filename,
            ctx.email,
            result.success,
            result.failed,
            result.skipped,
        )
        self._record(ctx, import_type, upload.filename, result, started_at)
        return result

    def _record(self, ctx: RequestContext, import_type: str, filename: str, result: ImportResult, started_at: datetime) -> None:
        if not self._logs:
            return
        try:
            self._logs.add(
                ImportLog(
                    import_type=import_type,
                    file_name=filename,
                    imported_by=ctx.user_id,
                    total_rows=result.total_rows,
                    success_count=result.success,
                    failed_count=result.failed,
                    errors=list(result.errors),
                    started_at=started_at,
                    completed_at=now_local(),
                )
            )
        except Exception:
            logger.exception("Failed to write import log for %s", filename)
