"""Ticket use cases: create, update with SLA recomputation, listing, export and import."""

from __future__ import annotations

import io
import logging
from dataclasses import replace
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from ..auth.context import RequestContext
from ..auth.policy import Action, PolicyEngine, Resource
from ..common.datetime_utils import now_local, parse_clock_time, parse_iso_date
from ..core.constants import DEFAULT_ADMIN_LIST_LIMIT
from ..core.enums import Severity
from ..core.exceptions import NotFoundError, ValidationError
from ..imports.excel import ImportResult, Upload
from ..imports.service import ImportRunner
from ..inventory.repository import InventoryRepository
from .importer import TICKET_SCHEMA, TicketRowImporter
from .model import (
    ADMIN_ONLY_FIELDS,
    DATE_FIELDS,
    EDITABLE_FIELDS,
    REFERENCE_FIELDS,
    TIME_FIELDS,
    Ticket,
)
from .repository import TicketRepository
from .sla import sla_values

logger = logging.getLogger(__name__)

REQUIRED_ON_CREATE = ("store_id", "rcc_reference_number", "request_detail", "sev")

EXPORT_COLUMNS = {
    "id": "Ticket ID",
    "rcc_reference_number": "RCC Reference Number",
    "store_code": "Store Code",
    "store_name": "Store Name",
    "sev": "Sev",
    "status": "Status",
    "request_type": "Request Type",
    "device": "Device",
    "problem_category": "Problem Category",
    "request_detail": "Request Detail",
    "action_taken": "Action Taken",
    "final_resolution": "Final Resolution",
    "reported_by_name": "Reported By",
    "serviced_by_name": "Serviced By",
    "date_reported": "Date Reported",
    "time_reported": "Time Reported",
    "date_ack": "Date Ack",
    "time_ack": "Time Ack",
    "date_responded": "Date Responded",
    "time_responded": "Time Responded",
    "date_attended": "Date Attended",
    "work_end": "Work End",
    "pause_time_start": "Pause Time (Start)",
    "pause_time_end": "Pause Time (End)",
    "pause_time_start_2": "Pause Time 2 (Start)",
    "pause_time_end_2": "Pause Time 2 (End)",
    "date_resolved": "Date Resolved",
    "time_resolved": "Time Resolved",
    "sla_count_hrs": "SLA Count (Hrs)",
    "sla_status": "SLA Status",
}


def parse_severity(value: Any) -> str:
    try:
        return Severity(str(value or "").strip().lower()).value
    except ValueError:
        raise ValidationError("sev must be one of sev1, sev2, sev3, sev4")


def normalize_field(name: str, value: Any) -> Any:
    """Coerce one incoming JSON value; blank means clear."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if name in DATE_FIELDS:
        if isinstance(value, date):
            return value
        try:
            return parse_iso_date(str(value).strip()[:10])
        except ValueError:
            raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")
    if name in TIME_FIELDS:
        return value if isinstance(value, time) else parse_clock_time(str(value), name)
    if name in REFERENCE_FIELDS:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be an integer")
    if name == "sev":
        return parse_severity(value)
    if name == "status":
        return str(value).strip().lower()
    return str(value).strip()


def normalize_fields(data: Mapping[str, Any]) -> dict:
    return {k: normalize_field(k, data[k]) for k in EDITABLE_FIELDS if k in data}


class TicketService:
    def __init__(
        self,
        tickets: TicketRepository,
        stores: InventoryRepository,
        *,
        policy: PolicyEngine,
        runner: ImportRunner,
    ):
        self._tickets = tickets
        self._stores = stores
        self._policy = policy
        self._runner = runner

    def create(self, ctx: RequestContext, data: Mapping[str, Any], *, now: Optional[datetime] = None) -> Ticket:
        self._policy.require(ctx, Action.TICKET_CREATE)
        if any(data.get(k) in (None, "") for k in REQUIRED_ON_CREATE):
            raise ValidationError("All required fields must be filled")

        values = normalize_fields(data)
        current = now or now_local()
        values.setdefault("date_reported", None)
        values.setdefault("time_reported", None)
        if values["date_reported"] is None:
            values["date_reported"] = current.date()
        if values["time_reported"] is None:
            values["time_reported"] = current.time().replace(second=0, microsecond=0)
        values["status"] = values.get("status") or "open"
        values["reported_by"] = values.get("reported_by") or ctx.user_id
        values.update(sla_values(values))

        ticket_id = self._tickets.create(values)
        logger.info("Ticket %s created by %s", ticket_id, ctx.email)
        return self._require(ticket_id)

    def update(self, ctx: RequestContext, ticket_id: Optional[int], data: Mapping[str, Any]) -> Ticket:
        if not ticket_id:
            raise ValidationError("Ticket ID is required")
        existing = self._require(ticket_id)
        self._policy.require(ctx, Action.TICKET_UPDATE, Resource(assignee_id=existing.serviced_by))

        changes = normalize_fields(data)
        if not self._policy.allows(ctx, Action.TICKET_REASSIGN):
            for k in ADMIN_ONLY_FIELDS:
                changes.pop(k, None)
        if "sev" in changes and changes["sev"] is None:
            raise ValidationError("sev cannot be cleared")
        if "request_detail" in changes and changes["request_detail"] is None:
            raise ValidationError("request_detail cannot be cleared")
        if not changes:
            return existing

        merged = existing.editable_values()
        merged.update(changes)
        changes.update(sla_values(merged, set(changes)))

        if not self._tickets.update(existing.id, changes):
            raise NotFoundError("Ticket not found")
        logger.info("Ticket %s updated by %s: %s", existing.id, ctx.email, ", ".join(sorted(changes)))
        return replace(existing, **changes)

    def get(self, ctx: RequestContext, ticket_id: int) -> Ticket:
        self._policy.require(ctx, Action.TICKET_VIEW)
        ticket = self._require(ticket_id)
        self._policy.require(ctx, Action.TICKET_READ, Resource(assignee_id=ticket.serviced_by))
        return ticket

    def list(self, ctx: RequestContext, *, limit: int = DEFAULT_ADMIN_LIST_LIMIT) -> Sequence[Ticket]:
        self._policy.require(ctx, Action.TICKET_VIEW)
        if self._policy.allows(ctx, Action.TICKET_VIEW_ALL):
            return self._tickets.list(limit=limit)
        return self._tickets.list(serviced_by=ctx.user_id, limit=limit)

    def export(
        self,
        ctx: RequestContext,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> io.BytesIO:
        """Tickets reported in ``[start_date, end_date]`` as an .xlsx workbook."""
        self._policy.require(ctx, Action.TICKET_EXPORT)
        rows = self._tickets.export_rows(
            start_date=normalize_field("date_reported", start_date),
            end_date=normalize_field("date_reported", end_date),
        )

        df = pd.DataFrame([{title: _cell(r.get(k)) for k, title in EXPORT_COLUMNS.items()} for r in rows])
        if df.empty:
            df = pd.DataFrame(columns=list(EXPORT_COLUMNS.values()))

        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Tickets")
        output.seek(0)
        logger.info("Exported %d tickets for %s", len(rows), ctx.email)
        return output

    def import_tickets(self, ctx: RequestContext, upload: Upload) -> ImportResult:
        self._policy.require(ctx, Action.TICKET_IMPORT)
        return self._runner.run(
            ctx,
            import_type="tickets",
            upload=upload,
            schema=TICKET_SCHEMA,
            handle_row=TicketRowImporter(self._tickets, self._stores, reported_by=ctx.user_id),
        )

    def _require(self, ticket_id: int) -> Ticket:
        ticket = self._tickets.get_by_id(ticket_id)
        if not ticket:
            raise NotFoundError("Ticket not found")
        return ticket


def _cell(value: Any) -> Any:
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, "value"):
        return value.value
    return value
