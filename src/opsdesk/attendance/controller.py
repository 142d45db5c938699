from __future__ import annotations

from flask import Flask, g, request

from ..auth.guard import make_auth_required
from ..common.http import json_body, respond
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container)

    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="attendance_clock_in")
    @auth_required
    def clock_in():
        record = container.attendance_service.clock_in(g.ctx)
        return respond({"message": "Clocked in", "attendance": record}, 201)

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="attendance_clock_out")
    @auth_required
    def clock_out():
        data = json_body()
        record = container.attendance_service.clock_out(g.ctx, overtime_comment=data.get("overtime_comment"))
        return respond({"message": "Clocked out", "attendance": record})

    @app.route("/api/attendance/my-logs", methods=["GET"], endpoint="attendance_my_logs")
    @auth_required
    def my_logs():
        limit = request.args.get("limit", type=int) or DEFAULT_HISTORY_LIMIT
        return respond({"logs": container.attendance_service.history(g.ctx, limit=limit)})
