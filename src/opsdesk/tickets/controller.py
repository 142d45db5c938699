from __future__ import annotations

from flask import Flask, g, request, send_file

from ..auth.guard import make_auth_required
from ..common.datetime_utils import now_local
from ..common.http import int_arg, json_body, respond
from ..container import Container
from ..imports.excel import upload_from_request

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container)

    @app.route("/api/tickets/create", methods=["POST"], endpoint="tickets_create")
    @auth_required
    def create_ticket():
        ticket = container.ticket_service.create(g.ctx, json_body())
        return respond({"ticket": ticket}, 201)

    @app.route("/api/tickets/update", methods=["PUT", "PATCH"], endpoint="tickets_update")
    @auth_required
    def update_ticket():
        data = json_body()
        ticket_id = int_arg("id", data.pop("id", None), required=False)
        ticket = container.ticket_service.update(g.ctx, ticket_id, data)
        return respond({"ticket": ticket})

    @app.route("/api/tickets/get", methods=["GET"], endpoint="tickets_get")
    @auth_required
    def get_tickets():
        ticket_id = int_arg("id", required=False)
        if ticket_id is not None:
            return respond({"ticket": container.ticket_service.get(g.ctx, ticket_id)})
        return respond({"tickets": container.ticket_service.list(g.ctx)})

    @app.route("/api/tickets/import", methods=["POST"], endpoint="tickets_import")
    @auth_required
    def import_tickets():
        upload = upload_from_request(request.files, request.get_json(silent=True))
        result = container.ticket_service.import_tickets(g.ctx, upload)
        return respond({"message": "Import completed", "results": result})

    @app.route("/api/tickets/export", methods=["GET"], endpoint="tickets_export")
    @auth_required
    def export_tickets():
        output = container.ticket_service.export(
            g.ctx,
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        return send_file(
            output,
            download_name=f"tickets_{now_local():%Y%m%d}.xlsx",
            as_attachment=True,
            mimetype=XLSX_MIMETYPE,
        )
