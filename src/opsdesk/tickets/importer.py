from __future__ import annotations

import logging
from typing import Optional

from ..core.enums import Severity
from ..imports.excel import ColumnSchema, RowValidationError, cell_date, cell_text, cell_time
from ..inventory.repository import InventoryRepository
from .repository import TicketRepository
from .sla import sla_values

logger = logging.getLogger(__name__)

DATE_COLUMNS = {
    "Date Reported": "date_reported",
    "Date Ack": "date_ack",
    "Date Responded": "date_responded",
    "Date Attended": "date_attended",
    "Date Resolved": "date_resolved",
}
TIME_COLUMNS = {
    "Time Reported": "time_reported",
    "Time Ack": "time_ack",
    "Time Responded": "time_responded",
    "Time Resolved": "time_resolved",
    "Work End": "work_end",
    "Pause Time (Start)": "pause_time_start",
    "Pause Time (End)": "pause_time_end",
    "Pause Time 2 (Start)": "pause_time_start_2",
    "Pause Time 2 (End)": "pause_time_end_2",
}
TEXT_COLUMNS = {
    "Request Type": "request_type",
    "Device": "device",
    "Problem Category": "problem_category",
    "Action Taken": "action_taken",
    "Final Resolution": "final_resolution",
}

TICKET_SCHEMA = ColumnSchema(
    required=("Store Code", "RCC Reference Number", "Sev", "Request Detail"),
    optional=tuple(DATE_COLUMNS) + tuple(TIME_COLUMNS) + ("Status", "Store Name") + tuple(TEXT_COLUMNS),
)


class TicketRowImporter:
    """Creates one ticket per sheet row, creating unknown stores on the way."""

    def __init__(
        self,
        tickets: TicketRepository,
        stores: InventoryRepository,
        *,
        reported_by: Optional[int] = None,
    ):
        self._tickets = tickets
        self._stores = stores
        self._reported_by = reported_by
        self._store_ids: dict[str, int] = {}

    def __call__(self, row_no: int, row: dict) -> None:
        raw_sev = cell_text(row["Sev"])
        try:
            sev = Severity(raw_sev.lower().replace(" ", "")).value
        except ValueError:
            raise RowValidationError(f'Invalid Severity "{raw_sev}" - Must be Sev1, Sev2, Sev3, or Sev4', "Sev")

        values = {
            "rcc_reference_number": cell_text(row["RCC Reference Number"]),
            "request_detail": cell_text(row["Request Detail"]),
            "sev": sev,
            "status": (cell_text(row.get("Status")) or "open").lower(),
            "reported_by": self._reported_by,
        }
        for column, name in DATE_COLUMNS.items():
            values[name] = cell_date(row.get(column), column)
        for column, name in TIME_COLUMNS.items():
            values[name] = cell_time(row.get(column), column)
        for column, name in TEXT_COLUMNS.items():
            values[name] = cell_text(row.get(column))

        values.update(sla_values(values))
        # Only rows that parsed cleanly may create a store.
        values["store_id"] = self._store_id(cell_text(row["Store Code"]), cell_text(row.get("Store Name")))
        self._tickets.create(values)

    def _store_id(self, code: str, name: Optional[str]) -> int:
        key = code.upper()
        if key not in self._store_ids:
            store = self._stores.find_store_by_code(code)
            if store:
                self._store_ids[key] = store.id
            else:
                self._store_ids[key] = self._stores.create_store(store_code=code, store_name=name or code)
                logger.info("Created store %s during ticket import", code)
        return self._store_ids[key]
