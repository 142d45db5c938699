from __future__ import annotations

from flask import Flask, g

from ..auth.guard import make_auth_required
from ..common.http import int_arg, json_body, respond
from ..container import Container


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container)

    @app.route("/api/cash-advance/file-request", methods=["POST"], endpoint="cash_advance_file_request")
    @auth_required
    def file_request():
        data = json_body()
        created = container.cash_advance_service.file_request(
            g.ctx,
            advance_type=data.get("type", ""),
            amount=data.get("amount"),
            date_requested=data.get("date") or data.get("date_requested"),
            purpose=data.get("purpose"),
        )
        return respond({"message": "Cash advance request submitted successfully", "data": created}, 201)

    @app.route("/api/cash-advance/my-requests", methods=["GET"], endpoint="cash_advance_my_requests")
    @auth_required
    def my_requests():
        return respond({"requests": container.cash_advance_service.list_my_requests(g.ctx)})

    @app.route("/api/cash-advance/update", methods=["POST"], endpoint="cash_advance_update")
    @auth_required
    def update():
        data = json_body()
        updated = container.cash_advance_service.decide(
            g.ctx,
            advance_id=int_arg("id", data.get("id")),
            action=data.get("action", ""),
            level=data.get("level"),
            comment=data.get("reviewerComment") or data.get("comment"),
        )
        return respond({"message": "Cash advance request updated successfully", "data": updated})

    @app.route("/api/cash-advance/delete", methods=["DELETE"], endpoint="cash_advance_delete")
    @auth_required
    def delete():
        container.cash_advance_service.delete(g.ctx, advance_id=int_arg("id"))
        return respond({"message": "Cash advance request deleted successfully"})
