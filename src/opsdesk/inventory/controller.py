from __future__ import annotations

from flask import Flask, g, request

from ..auth.guard import make_auth_required
from ..common.http import respond
from ..container import Container
from ..imports.excel import upload_from_request


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container)

    @app.route("/api/inventory/import", methods=["POST"], endpoint="inventory_import")
    @auth_required
    def import_inventory():
        upload = upload_from_request(request.files, request.get_json(silent=True))
        result = container.inventory_service.import_inventory(g.ctx, upload)
        return respond({"message": "Import completed", "results": result})
