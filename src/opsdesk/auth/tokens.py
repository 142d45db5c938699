from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from ..core.exceptions import AuthenticationError


class TokenService:
    """Issue and verify signed bearer tokens (JWT)."""

    def __init__(self, secret_key: str, *, algorithm: str = "HS256", ttl_minutes: int = 720):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._ttl = timedelta(minutes=int(ttl_minutes))

    def issue(self, *, user_id: int, email: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode_user_id(self, token: str) -> int:
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError:
            raise AuthenticationError("Unauthorized: Invalid token or session")

        sub = payload.get("sub")
        if sub is None or not str(sub).isdigit():
            raise AuthenticationError("Unauthorized: Invalid token or session")
        return int(sub)
