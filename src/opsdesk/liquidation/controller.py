from __future__ import annotations

from flask import Flask, g

from ..auth.guard import make_auth_required
from ..common.http import int_arg, json_body, respond
from ..container import Container


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container)

    @app.route("/api/liquidation/file", methods=["POST"], endpoint="liquidation_file")
    @auth_required
    def file_liquidation():
        data = json_body()
        created = container.liquidation_service.file(
            g.ctx,
            cash_advance_id=int_arg("cash_advance_id", data.get("cash_advance_id"), required=False),
            store_id=int_arg("store_id", data.get("store_id"), required=False),
            ticket_id=int_arg("ticket_id", data.get("ticket_id"), required=False),
            liquidation_date=data.get("liquidation_date", ""),
            items=data.get("items") or [],
            remarks=data.get("remarks"),
        )
        return respond({"message": "Liquidation submitted successfully", "liquidation": created}, 201)

    @app.route("/api/liquidation/my-requests", methods=["GET"], endpoint="liquidation_my_requests")
    @auth_required
    def my_requests():
        return respond({"liquidations": container.liquidation_service.list_my_requests(g.ctx)})

    @app.route("/api/liquidation/update-status-level", methods=["POST"], endpoint="liquidation_update_status_level")
    @auth_required
    def update_status_level():
        data = json_body()
        updated = container.liquidation_service.decide(
            g.ctx,
            liquidation_id=int_arg("id", data.get("id")),
            level=data.get("level"),
            action=data.get("action", ""),
            comment=data.get("reviewerComment") or data.get("comment"),
        )
        return respond({"message": f"Liquidation {updated.status.value}", "liquidation": updated})

    @app.route("/api/liquidation/delete", methods=["DELETE"], endpoint="liquidation_delete")
    @auth_required
    def delete():
        container.liquidation_service.delete(g.ctx, liquidation_id=int_arg("id"))
        return respond({"message": "Liquidation deleted successfully"})
