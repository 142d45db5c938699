from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from ..core.enums import SlaStatus

DATE_FIELDS = (
    "date_reported",
    "date_ack",
    "date_responded",
    "date_attended",
    "date_resolved",
)
TIME_FIELDS = (
    "time_reported",
    "time_ack",
    "time_responded",
    "work_end",
    "pause_time_start",
    "pause_time_end",
    "pause_time_start_2",
    "pause_time_end_2",
    "time_resolved",
)
REFERENCE_FIELDS = ("store_id", "station_id", "reported_by", "serviced_by")
TEXT_FIELDS = (
    "rcc_reference_number",
    "sev",
    "status",
    "request_type",
    "device",
    "problem_category",
    "request_detail",
    "action_taken",
    "final_resolution",
)
EDITABLE_FIELDS = TEXT_FIELDS + REFERENCE_FIELDS + DATE_FIELDS + TIME_FIELDS

# Fields an assignee may not change on their own ticket
ADMIN_ONLY_FIELDS = ("serviced_by", "reported_by", "store_id", "station_id", "sev")

SLA_COUNT_SOURCES = (
    "date_ack",
    "time_ack",
    "date_attended",
    "work_end",
    "pause_time_start",
    "pause_time_end",
    "pause_time_start_2",
    "pause_time_end_2",
)
SLA_STATUS_SOURCES = (
    "sev",
    "date_ack",
    "time_ack",
    "date_responded",
    "time_responded",
    "date_resolved",
    "time_resolved",
)


@dataclass(frozen=True)
class Ticket:
    id: int
    sev: str
    request_detail: str
    status: str = "open"
    rcc_reference_number: Optional[str] = None
    store_id: Optional[int] = None
    station_id: Optional[int] = None
    reported_by: Optional[int] = None
    serviced_by: Optional[int] = None
    request_type: Optional[str] = None
    device: Optional[str] = None
    problem_category: Optional[str] = None
    action_taken: Optional[str] = None
    final_resolution: Optional[str] = None
    date_reported: Optional[date] = None
    time_reported: Optional[time] = None
    date_ack: Optional[date] = None
    time_ack: Optional[time] = None
    date_responded: Optional[date] = None
    time_responded: Optional[time] = None
    date_attended: Optional[date] = None
    work_end: Optional[time] = None
    pause_time_start: Optional[time] = None
    pause_time_end: Optional[time] = None
    pause_time_start_2: Optional[time] = None
    pause_time_end_2: Optional[time] = None
    date_resolved: Optional[date] = None
    time_resolved: Optional[time] = None
    sla_count_hrs: Optional[Decimal] = None
    sla_status: Optional[SlaStatus] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def editable_values(self) -> dict:
        values = asdict(self)
        return {k: values[k] for k in EDITABLE_FIELDS}
