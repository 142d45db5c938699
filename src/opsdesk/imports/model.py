from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ImportLog:
    import_type: str
    file_name: str
    imported_by: Optional[int]
    total_rows: int
    success_count: int
    failed_count: int
    errors: list
    started_at: datetime
    completed_at: datetime
