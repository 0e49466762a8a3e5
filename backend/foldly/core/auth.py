"""Caller identity as a FastAPI dependency.

Sessions are issued by an upstream identity provider; the gateway in front
of this service forwards the authenticated user id in ``X-User-Id``.

When ``settings.auth_enabled`` is False a missing header falls back to
``settings.dev_user_id`` so the development workflow is unbroken.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from .config import settings
from ..exceptions import AuthenticationError


@dataclass(frozen=True)
class AuthContext:
    """Resolved caller identity available to every endpoint."""

    user_id: str


def require_auth(x_user_id: Optional[str] = Header(default=None)) -> AuthContext:
    """Return the caller's AuthContext or raise 401."""
    user_id = (x_user_id or "").strip()
    if user_id:
        return AuthContext(user_id=user_id)
    if not settings.auth_enabled:
        return AuthContext(user_id=settings.dev_user_id)
    raise AuthenticationError("Missing X-User-Id header")
