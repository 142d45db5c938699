from __future__ import annotations

from flask import Flask, g, request

from ..auth.guard import make_auth_required
from ..common.http import int_arg, json_body, respond
from ..container import Container


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container)

    @app.route("/api/overtime/file-request", methods=["POST"], endpoint="overtime_file_request")
    @auth_required
    def file_request():
        data = json_body()
        created = container.overtime_service.file_request(
            g.ctx,
            overtime_date=data.get("overtime_date") or data.get("date"),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            reason=data.get("reason", ""),
            attendance_id=int_arg("attendance_id", data.get("attendance_id"), required=False),
        )
        if created.final_status is not None:
            message = "Overtime request submitted and automatically approved"
        else:
            message = "Overtime request submitted successfully"
        return respond({"message": message, "data": created}, 201)

    @app.route("/api/overtime/my-requests", methods=["GET"], endpoint="overtime_my_requests")
    @auth_required
    def my_requests():
        return respond({"requests": container.overtime_service.list_my_requests(g.ctx)})

    @app.route("/api/overtime/delete-request", methods=["DELETE"], endpoint="overtime_delete_request")
    @auth_required
    def delete_request():
        container.overtime_service.withdraw(g.ctx, request_id=int_arg("id"))
        return respond({"message": "Overtime request deleted successfully"})

    @app.route("/api/admin/overtime-requests", methods=["GET"], endpoint="admin_overtime_requests")
    @auth_required
    def admin_overtime_requests():
        rows = container.overtime_service.list_for_review(g.ctx, state=request.args.get("status"))
        return respond({"requests": rows})

    @app.route("/api/admin/update-overtime", methods=["POST"], endpoint="admin_update_overtime")
    @auth_required
    def update_overtime():
        data = json_body()
        updated = container.overtime_service.decide(
            g.ctx,
            request_id=int_arg("requestId", data.get("requestId", data.get("id"))),
            level=data.get("level", ""),
            action=data.get("action") or data.get("status", ""),
            comment=data.get("comment") or data.get("reviewer_comment"),
        )
        return respond({"message": "Overtime request updated successfully", "data": updated})
