from __future__ import annotations

from typing import Any, Optional

from flask import jsonify, request

from ..core.exceptions import ValidationError
from .serialization import to_jsonable


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def respond(payload: Any, status: int = 200):
    return jsonify(to_jsonable(payload)), status


def int_arg(name: str, value: Any = None, *, required: bool = True) -> Optional[int]:
    """Read an integer id from ``value`` or from the query string."""
    raw = value if value is not None else request.args.get(name)
    if raw is None or str(raw).strip() == "":
        if required:
            raise ValidationError(f"{name} is required")
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
