from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..core.enums import Role
from ..core.exceptions import AuthenticationError

JWT_ALGO = "HS256"


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: Role


class TokenService:
    """Verifies bearer tokens issued by the login service.

    Issuing lives here too so tooling and tests can mint tokens with the same
    secret; credential storage is not part of this package.
    """

    def __init__(self, secret: str, *, algorithm: str = JWT_ALGO):
        self._secret = secret
        self._algorithm = algorithm

    def issue(self, user_id: str, role: Role, *, ttl: timedelta = timedelta(days=30)) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": role.value,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: Optional[str]) -> Identity:
        if not token:
            raise AuthenticationError("Access token required")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired") from None
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token") from None

        try:
            return Identity(user_id=str(payload["sub"]), role=Role(payload["role"]))
        except (KeyError, ValueError):
            raise AuthenticationError("Malformed token claims") from None
