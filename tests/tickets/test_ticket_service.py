from __future__ import annotations

import io
from dataclasses import fields, replace
from datetime import date, time
from decimal import Decimal
from typing import Optional

import pandas as pd
import pytest

from opsdesk.core.enums import Role, SlaStatus
from opsdesk.core.exceptions import AuthorizationError, NotFoundError, UnprocessableError, ValidationError
from opsdesk.imports.excel import Upload
from opsdesk.imports.service import ImportRunner
from opsdesk.inventory.model import Store
from opsdesk.tickets.model import Ticket
from opsdesk.tickets.service import EXPORT_COLUMNS, TicketService

TICKET_FIELDS = {f.name for f in fields(Ticket)}


class InMemoryTickets:
    def __init__(self):
        self.tickets: dict[int, Ticket] = {}
        self.updates = []

    def create(self, values) -> int:
        ticket_id = len(self.tickets) + 1
        self.tickets[ticket_id] = Ticket(id=ticket_id, **{k: v for k, v in values.items() if k in TICKET_FIELDS})
        return ticket_id

    def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        return self.tickets.get(ticket_id)

    def update(self, ticket_id: int, values) -> bool:
        if ticket_id not in self.tickets:
            return False
        self.updates.append(dict(values))
        self.tickets[ticket_id] = replace(self.tickets[ticket_id], **values)
        return True

    def list(self, *, serviced_by: Optional[int] = None, limit: int):
        rows = [t for t in self.tickets.values() if serviced_by is None or t.serviced_by == serviced_by]
        return rows[:limit]

    def export_rows(self, *, start_date=None, end_date=None):
        rows = []
        for t in self.tickets.values():
            if start_date and t.date_reported < start_date:
                continue
            if end_date and t.date_reported > end_date:
                continue
            rows.append({**t.__dict__, "store_code": f"S{t.store_id}", "store_name": "Store", "serviced_by_name": None})
        return rows


class StoreDirectory:
    def __init__(self, *stores: Store):
        self.stores = {s.store_code.upper(): s for s in stores}

    def find_store_by_code(self, store_code: str) -> Optional[Store]:
        return self.stores.get(store_code.upper())

    def create_store(self, *, store_code: str, store_name: str) -> int:
        store = Store(id=100 + len(self.stores), store_code=store_code, store_name=store_name)
        self.stores[store_code.upper()] = store
        return store.id


@pytest.fixture
def tickets():
    return InMemoryTickets()


@pytest.fixture
def stores():
    return StoreDirectory(Store(id=12, store_code="MKT01", store_name="Makati Central"))


@pytest.fixture
def service(tickets, stores, policy):
    return TicketService(tickets, stores, policy=policy, runner=ImportRunner())


@pytest.fixture
def admin(make_ctx):
    return make_ctx(1, role=Role.ADMIN, position="Admin Tech", permissions={"view_ticket_overview"})


def _seed(tickets, **values):
    base = dict(
        sev="sev1",
        request_detail="POS down",
        rcc_reference_number="RCC-1",
        store_id=12,
        serviced_by=2,
        date_reported=date(2026, 3, 2),
        date_ack=date(2026, 3, 2),
        time_ack=time(9, 0),
        date_attended=date(2026, 3, 2),
        work_end=time(11, 30),
        sla_count_hrs=Decimal("2.5"),
    )
    base.update(values)
    return tickets.tickets[tickets.create(base)]


def test_create_fills_defaults_and_sla(service, make_ctx, fixed_now):
    ticket = service.create(
        make_ctx(5),
        {
            "store_id": "12",
            "rcc_reference_number": " RCC-9 ",
            "request_detail": "Printer jam",
            "sev": "SEV1",
            "date_ack": "2026-03-02T00:00:00",
            "time_ack": "09:00",
            "date_attended": "2026-03-02",
            "work_end": "11:30",
            "pause_time_start": "10:00",
            "pause_time_end": "10:30",
            "date_resolved": "2026-03-02",
            "time_resolved": "12:00",
        },
        now=fixed_now,
    )
    assert ticket.store_id == 12
    assert ticket.rcc_reference_number == "RCC-9"
    assert ticket.sev == "sev1"
    assert ticket.status == "open"
    assert ticket.reported_by == 5
    assert (ticket.date_reported, ticket.time_reported) == (date(2026, 3, 2), time(18, 30))
    assert ticket.sla_count_hrs == Decimal("2.0")
    assert ticket.sla_status == SlaStatus.PASSED


@pytest.mark.parametrize(
    "data, message",
    [
        ({"store_id": 12, "rcc_reference_number": "R", "request_detail": "x"}, "All required fields"),
        ({"store_id": 12, "rcc_reference_number": "R", "request_detail": "x", "sev": "sev7"}, "sev must be one of"),
        (
            {"store_id": 12, "rcc_reference_number": "R", "request_detail": "x", "sev": "sev2", "time_ack": "9am"},
            "time_ack must be HH:MM",
        ),
    ],
)
def test_create_validation(service, make_ctx, data, message):
    with pytest.raises(ValidationError, match=message):
        service.create(make_ctx(5), data)


def test_field_engineer_cannot_create(service, make_ctx):
    with pytest.raises(AuthorizationError, match="Access denied for your position"):
        service.create(make_ctx(5, position="Field Engineer"), {})


def test_create_rejects_work_end_before_ack(service, make_ctx):
    data = {
        "store_id": 12,
        "rcc_reference_number": "R",
        "request_detail": "x",
        "sev": "sev2",
        "date_ack": "2026-03-02",
        "time_ack": "15:00",
        "date_attended": "2026-03-02",
        "work_end": "14:00",
    }
    with pytest.raises(UnprocessableError):
        service.create(make_ctx(5), data)


def test_assignee_update_recomputes_sla_and_ignores_admin_fields(service, tickets, make_ctx):
    ticket = _seed(tickets)
    updated = service.update(make_ctx(2), ticket.id, {"work_end": "12:00", "sev": "sev4", "serviced_by": 7})

    assert updated.work_end == time(12, 0)
    assert updated.sla_count_hrs == Decimal("3.0")
    assert updated.sev == "sev1"
    assert updated.serviced_by == 2
    assert "sla_status" not in tickets.updates[-1]


def test_clearing_a_source_clears_computed_value(service, tickets, admin):
    ticket = _seed(tickets)
    updated = service.update(admin, ticket.id, {"work_end": ""})
    assert updated.work_end is None
    assert updated.sla_count_hrs is None
    assert tickets.updates[-1]["sla_count_hrs"] is None


def test_admin_can_reassign_and_change_severity(service, tickets, admin):
    ticket = _seed(tickets, date_resolved=date(2026, 3, 2), time_resolved=time(15, 0))
    updated = service.update(admin, ticket.id, {"serviced_by": "7", "sev": "sev2"})
    assert updated.serviced_by == 7
    assert updated.sla_status == SlaStatus.PASSED
    assert "sla_count_hrs" not in tickets.updates[-1]


def test_update_without_changes_returns_ticket(service, tickets, make_ctx):
    ticket = _seed(tickets)
    assert service.update(make_ctx(2), ticket.id, {"sev": "sev3"}) == ticket
    assert tickets.updates == []


def test_update_guards(service, tickets, make_ctx, admin):
    ticket = _seed(tickets)
    with pytest.raises(ValidationError, match="Ticket ID is required"):
        service.update(admin, None, {})
    with pytest.raises(NotFoundError):
        service.update(admin, 99, {})
    with pytest.raises(AuthorizationError, match="assigned employee"):
        service.update(make_ctx(3), ticket.id, {"action_taken": "rebooted"})
    with pytest.raises(ValidationError, match="request_detail cannot be cleared"):
        service.update(admin, ticket.id, {"request_detail": " "})


def test_list_and_get_scoping(service, tickets, make_ctx, admin):
    mine = _seed(tickets, serviced_by=2)
    _seed(tickets, serviced_by=3)

    assert len(service.list(admin)) == 2
    assert service.list(make_ctx(2)) == [mine]
    assert service.list(make_ctx(4, permissions={"manage_tickets"})) == list(tickets.tickets.values())

    assert service.get(make_ctx(2), mine.id) == mine
    with pytest.raises(AuthorizationError, match="assigned to you"):
        service.get(make_ctx(3), mine.id)
    with pytest.raises(AuthorizationError, match="Access denied for your position"):
        service.list(make_ctx(2, position="Asset Lead"))


def test_export_workbook(service, tickets, admin):
    _seed(tickets, date_reported=date(2026, 2, 1))
    _seed(tickets, rcc_reference_number="RCC-2", sla_status=SlaStatus.FAILED)

    output = service.export(admin, start_date="2026-03-01", end_date="2026-03-31")
    df = pd.read_excel(output, sheet_name="Tickets")

    assert list(df.columns) == list(EXPORT_COLUMNS.values())
    assert df["RCC Reference Number"].tolist() == ["RCC-2"]
    assert df["SLA Status"].tolist() == ["Failed"]
    assert df["Time Ack"].tolist() == ["09:00"]
    assert df["SLA Count (Hrs)"].tolist() == [2.5]


def test_export_empty_range_keeps_headers(service, admin):
    df = pd.read_excel(service.export(admin), sheet_name="Tickets")
    assert df.empty
    assert list(df.columns) == list(EXPORT_COLUMNS.values())


def test_export_requires_overview_permission(service, make_ctx):
    with pytest.raises(AuthorizationError, match="export ticket data"):
        service.export(make_ctx(1, role=Role.ADMIN))


def test_import_tickets(service, tickets, stores, admin):
    frame = pd.DataFrame(
        [
            ["MKT01", None, "RCC-10", "Sev 1", "Register frozen", "03/02/2026", "09:00", "03/02/2026", "11:00"],
            ["QC02", "Quezon City", "RCC-11", "SEV3", "Scanner", None, None, None, None],
            ["MKT01", None, "RCC-12", "Sev9", "Bad sev", None, None, None, None],
        ],
        columns=[
            "Store Code",
            "Store Name",
            "RCC Reference Number",
            "Sev",
            "Request Detail",
            "Date Ack",
            "Time Ack",
            "Date Resolved",
            "Time Resolved",
        ],
    )
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False)

    result = service.import_tickets(admin, Upload("tickets.xlsx", out.getvalue()))

    assert (result.success, result.failed) == (2, 1)
    assert result.errors[0].row == 4
    assert result.errors[0].field == "Sev"
    assert result.errors[0].message == 'Invalid Severity "Sev9" - Must be Sev1, Sev2, Sev3, or Sev4'

    first, second = tickets.tickets.values()
    assert (first.store_id, first.sev, first.status, first.reported_by) == (12, "sev1", "open", 1)
    assert first.date_ack == date(2026, 3, 2)
    assert first.sla_status == SlaStatus.PASSED
    assert stores.find_store_by_code("qc02").store_name == "Quezon City"
    assert second.store_id == stores.find_store_by_code("QC02").id
    assert second.sla_status is None


def _workbook(frame: pd.DataFrame) -> bytes:
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False)
    return out.getvalue()


def test_import_rejected_row_does_not_create_store(service, tickets, stores, admin):
    frame = pd.DataFrame(
        [
            ["NEW01", "New Store", "RCC-20", "Sev2", "Drawer stuck", "sometime"],
            ["NEW02", "Other Store", "RCC-21", "Sev2", "Drawer stuck", "03/02/2026 9am"],
        ],
        columns=["Store Code", "Store Name", "RCC Reference Number", "Sev", "Request Detail", "Date Ack"],
    )

    result = service.import_tickets(admin, Upload("tickets.xlsx", _workbook(frame)))

    assert (result.success, result.failed) == (0, 2)
    assert [(e.row, e.field) for e in result.errors] == [(2, "Date Ack"), (3, "Date Ack")]
    assert stores.find_store_by_code("NEW01") is None
    assert stores.find_store_by_code("NEW02") is None
    assert tickets.tickets == {}


def test_import_reads_second_pause(service, tickets, admin):
    frame = pd.DataFrame(
        [
            [
                "MKT01", "RCC-30", "Sev3", "Network down",
                "03/02/2026", "08:00", "03/02/2026", "12:00",
                "09:00", "09:30", "10:00", "11:00",
            ],
        ],
        columns=[
            "Store Code",
            "RCC Reference Number",
            "Sev",
            "Request Detail",
            "Date Ack",
            "Time Ack",
            "Date Attended",
            "Work End",
            "Pause Time (Start)",
            "Pause Time (End)",
            "Pause Time 2 (Start)",
            "Pause Time 2 (End)",
        ],
    )

    result = service.import_tickets(admin, Upload("tickets.xlsx", _workbook(frame)))

    assert (result.success, result.failed) == (1, 0)
    (ticket,) = tickets.tickets.values()
    assert (ticket.pause_time_start_2, ticket.pause_time_end_2) == (time(10, 0), time(11, 0))
    assert ticket.sla_count_hrs == Decimal("2.5")


def test_import_requires_permission(service, make_ctx):
    with pytest.raises(AuthorizationError, match="import tickets"):
        service.import_tickets(make_ctx(5), Upload("tickets.xlsx", b"unused"))
