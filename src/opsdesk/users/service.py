from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from werkzeug.security import check_password_hash

from ..auth.context import RequestContext
from ..auth.tokens import TokenService
from ..common.validators import require_non_empty
from ..core.exceptions import AuthenticationError
from .model import Profile
from .repository import ProfileRepository


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    profile: Profile


class AuthService:
    """Use cases: log in with email/password and resolve bearer tokens."""

    def __init__(self, profiles: ProfileRepository, tokens: TokenService):
        self._profiles = profiles
        self._tokens = tokens

    def login(self, email: str, password: str) -> LoginResult:
        email = require_non_empty(email, "Email")
        password = require_non_empty(password, "Password")

        profile = self._profiles.get_by_email(email)
        if not profile or not profile.is_active:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(profile.password_hash, password)
        except ValueError:
            # placeholder or corrupted hashes
            ok = False
        if not ok:
            raise AuthenticationError("Invalid email or password")

        token = self._tokens.issue(user_id=profile.id, email=profile.email)
        return LoginResult(access_token=token, profile=profile)

    def resolve(self, token: Optional[str]) -> RequestContext:
        if not token:
            raise AuthenticationError("Unauthorized: Missing token")

        user_id = self._tokens.decode_user_id(token)
        profile = self._profiles.get_by_id(user_id)
        if not profile or not profile.is_active:
            raise AuthenticationError("Unauthorized: Invalid token or session")

        return context_for(profile)


def context_for(profile: Profile) -> RequestContext:
    return RequestContext(
        user_id=profile.id,
        email=profile.email,
        role=profile.role,
        position=profile.position,
        permissions=profile.permissions,
        full_name=profile.full_name,
    )
