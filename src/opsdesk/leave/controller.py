from __future__ import annotations

from flask import Flask, g, request

from ..auth.guard import make_auth_required
from ..common.http import int_arg, json_body, respond
from ..container import Container


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container)

    @app.route("/api/leave/create", methods=["POST"], endpoint="leave_create")
    @auth_required
    def create():
        data = json_body()
        created = container.leave_service.create(
            g.ctx,
            leave_type=data.get("leave_type", ""),
            start_date=data.get("start_date", ""),
            end_date=data.get("end_date", ""),
            reason=data.get("reason", ""),
        )
        return respond({"message": "Leave request submitted successfully", "data": created}, 201)

    @app.route("/api/leave/my-requests", methods=["GET"], endpoint="leave_my_requests")
    @auth_required
    def my_requests():
        return respond({"requests": container.leave_service.list_my_requests(g.ctx)})

    @app.route("/api/admin/leave-requests", methods=["GET"], endpoint="admin_leave_requests")
    @auth_required
    def admin_leave_requests():
        rows = container.leave_service.list_for_review(g.ctx, status=request.args.get("status"))
        return respond({"requests": rows})

    @app.route("/api/admin/update-leave", methods=["POST"], endpoint="admin_update_leave")
    @auth_required
    def update_leave():
        data = json_body()
        updated = container.leave_service.decide(
            g.ctx,
            request_id=int_arg("id", data.get("id")),
            action=data.get("action", ""),
            comment=data.get("comment") or data.get("reviewer_comment"),
        )
        return respond({"message": f"Leave request {updated.status.value}", "data": updated})

    @app.route("/api/admin/revoke-leave", methods=["POST"], endpoint="admin_revoke_leave")
    @auth_required
    def revoke_leave():
        data = json_body()
        revoked = container.leave_service.revoke(
            g.ctx,
            request_id=int_arg("id", data.get("id")),
            comment=data.get("comment") or data.get("reviewerComment"),
        )
        return respond({"message": "Leave request revoked successfully", "data": revoked})
