from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import g, request

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from .tokens import Identity, TokenService


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def make_auth_required(tokens: TokenService):
    """Build an ``auth_required(role)`` decorator bound to ``tokens``.

    The verified identity is stored on ``flask.g.identity``. Errors are raised
    as domain errors and rendered by the app-wide error handler.
    """

    def auth_required(role: Optional[Role] = None):
        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                identity = tokens.verify(bearer_token())
                if role is not None and identity.role != role:
                    raise AuthorizationError(f"{role.value.capitalize()} access required")
                g.identity = identity
                return view(*args, **kwargs)

            return wrapper

        return decorator

    return auth_required


def current_identity() -> Identity:
    return g.identity
