"""Excel upload parsing and the row-by-row import loop.

Row numbers in errors are Excel row numbers: the header is row 1, so the
first data row is row 2.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Mapping, Optional

import pandas as pd

from ..core.constants import IMPORT_BATCH_SIZE, IMPORT_MAX_ROWS
from ..core.exceptions import DomainError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xlsx", ".xls")
_EXCEL_EPOCH = datetime(1899, 12, 30)
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([AaPp][Mm])?$")


@dataclass(frozen=True)
class Upload:
    filename: str
    content: bytes


@dataclass(frozen=True)
class ColumnSchema:
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()

    @property
    def columns(self) -> tuple[str, ...]:
        return self.required + self.optional


@dataclass(frozen=True)
class RowError:
    row: int
    field: Optional[str]
    message: str


@dataclass
class ImportResult:
    total_rows: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[RowError] = field(default_factory=list)


class RowValidationError(ValidationError):
    """A single row failed validation; ``field`` names the offending column."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def upload_from_request(files: Mapping[str, Any], body: Optional[Mapping[str, Any]]) -> Upload:
    """Accept a multipart ``file`` or a JSON body with base64 ``fileData``."""
    storage = files.get("file") if files else None
    if storage is not None and getattr(storage, "filename", ""):
        return _checked(Upload(filename=storage.filename, content=storage.read()))

    body = body or {}
    encoded = body.get("fileData") or body.get("file_data")
    if not encoded:
        raise ValidationError("No file uploaded")
    if isinstance(encoded, str) and "," in encoded and encoded.startswith("data:"):
        encoded = encoded.split(",", 1)[1]
    try:
        content = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError, TypeError):
        raise ValidationError("Uploaded file is not valid base64")
    return _checked(Upload(filename=str(body.get("fileName") or body.get("file_name") or "upload.xlsx"), content=content))


def _checked(upload: Upload) -> Upload:
    if not upload.filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise ValidationError("Invalid file type. Please upload an Excel file (.xlsx or .xls)")
    if not upload.content:
        raise ValidationError("Uploaded file is empty")
    return upload


def normalize_header(value: Any) -> str:
    return " ".join(str(value).split())


def read_workbook(upload: Upload) -> pd.DataFrame:
    try:
        df = pd.read_excel(io.BytesIO(upload.content), dtype=object)
    except Exception as exc:
        raise ValidationError(f"Could not read Excel file: {exc}") from exc
    df.columns = [normalize_header(c) for c in df.columns]
    return df


def require_columns(df: pd.DataFrame, schema: ColumnSchema) -> None:
    missing = [c for c in schema.required if c not in df.columns]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def clean_row(row: Mapping[str, Any]) -> dict:
    return {k: (None if is_blank(v) else (v.strip() if isinstance(v, str) else v)) for k, v in row.items()}


def cell_text(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def cell_date(value: Any, field_name: str) -> Optional[date]:
    """Excel dates arrive as datetimes, serial numbers or ``MM/DD/YYYY`` text."""
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return (_EXCEL_EPOCH + timedelta(days=float(value))).date()
    text = str(value).strip()
    for fmt in ("%m/%d/%Y", "%Y-%m-%d", "%m/%d/%y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise RowValidationError(f"{field_name} must be a date (MM/DD/YYYY)", field_name)


def cell_time(value: Any, field_name: str) -> Optional[time]:
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.time().replace(microsecond=0)
    if isinstance(value, time):
        return value.replace(microsecond=0)
    if isinstance(value, (int, float)) and 0 <= float(value) < 1:
        seconds = int(round(float(value) * 86400))
        return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)

    m = _CLOCK_RE.match(str(value).strip())
    if not m:
        raise RowValidationError(f"{field_name} must be a time (HH:MM)", field_name)
    hours, minutes, seconds = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    meridiem = (m.group(4) or "").lower()
    if meridiem == "pm" and hours < 12:
        hours += 12
    elif meridiem == "am" and hours == 12:
        hours = 0
    if hours > 23 or minutes > 59 or seconds > 59:
        raise RowValidationError(f"{field_name} must be a time (HH:MM)", field_name)
    return time(hours, minutes, seconds)


def run_rows(
    df: pd.DataFrame,
    schema: ColumnSchema,
    handle_row: Callable[[int, dict], None],
    *,
    batch_size: int = IMPORT_BATCH_SIZE,
    max_rows: int = IMPORT_MAX_ROWS,
) -> ImportResult:
    """Validate and hand each non-blank row to ``handle_row`` sequentially, in batches."""
    require_columns(df, schema)

    records = df.to_dict("records")
    rows = [(index + 2, clean_row(r)) for index, r in enumerate(records)]
    filled = [(row_no, r) for row_no, r in rows if any(v is not None for v in r.values())]

    result = ImportResult(total_rows=len(filled), skipped=len(rows) - len(filled))
    if len(filled) > max_rows:
        raise ValidationError(f"Too many rows ({len(filled)}). Maximum is {max_rows} rows per import.")

    for start in range(0, len(filled), batch_size):
        batch = filled[start : start + batch_size]
        logger.info(
            "Importing rows %d-%d of %d",
            start + 1,
            start + len(batch),
            len(filled),
        )
        for row_no, row in batch:
            missing = [c for c in schema.required if row.get(c) is None]
            if missing:
                result.errors.append(
                    RowError(row_no, ", ".join(missing), f"Missing required field(s): {', '.join(missing)}")
                )
                result.failed += 1
                continue

            try:
                handle_row(row_no, row)
                result.success += 1
            except RowValidationError as exc:
                result.errors.append(RowError(row_no, exc.field, str(exc)))
                result.failed += 1
            except DomainError as exc:
                result.errors.append(RowError(row_no, None, str(exc)))
                result.failed += 1
            except Exception:
                logger.exception("Import row %d failed", row_no)
                result.errors.append(RowError(row_no, None, "Unexpected error while importing this row"))
                result.failed += 1

    return result
