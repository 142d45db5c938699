from __future__ import annotations

from flask import Flask, g

from ..common.http import json_body, respond
from ..container import Container
from .guard import make_auth_required


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container)

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = json_body()
        result = container.auth_service.login(data.get("email", ""), data.get("password", ""))
        profile = result.profile
        return respond(
            {
                "access_token": result.access_token,
                "token_type": "bearer",
                "user": {
                    "id": profile.id,
                    "email": profile.email,
                    "full_name": profile.full_name,
                    "role": profile.role,
                    "position": profile.position,
                },
            }
        )

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @auth_required
    def me():
        ctx = g.ctx
        return respond(
            {
                "id": ctx.user_id,
                "email": ctx.email,
                "full_name": ctx.full_name,
                "role": ctx.role,
                "position": ctx.position,
                "permissions": sorted(ctx.permissions),
            }
        )
