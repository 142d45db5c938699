from __future__ import annotations

from functools import wraps

from flask import g, request

from ..core.exceptions import AuthenticationError


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Unauthorized: Missing token")
    return token.strip()


def make_auth_required(container):
    """Build the ``auth_required`` decorator bound to the app container.

    The decorated view finds its principal in ``g.ctx``.
    """

    def auth_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.ctx = container.auth_service.resolve(bearer_token())
            return view(*args, **kwargs)

        return wrapper

    return auth_required
