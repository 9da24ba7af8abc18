"""
Authentication utilities.
Resolves the acting user from a bearer JWT. Authorization decisions
(who may edit which recipe) are made upstream.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import Header

from shared.config.settings import JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET, settings
from shared.config.logging import get_logger
from shared.utils.exceptions import UnauthorizedError

logger = get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """The authenticated user making a request."""

    id: int
    name: str | None = None


# =============================================================================
# JWT Functions
# =============================================================================


def sign_jwt(payload: dict[str, Any], ttl_seconds: int | None = None) -> str:
    """
    Sign a JWT token with the given payload.

    Access tokens are normally issued by the login service; this signs them
    with the same key and claims verify_jwt checks, for tests and tooling.

    Args:
        payload: Claims to include in the token (sub, name, ...)
        ttl_seconds: Token lifetime in seconds. Defaults to access token expiry.

    Returns:
        Signed JWT token string.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, JWT_SECRET, algorithm="HS256")


def verify_jwt(token: str) -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Raises:
        UnauthorizedError: If the token is invalid, expired, or lacks a subject.
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError("Invalid token", reason=str(exc))

    if not payload.get("sub"):
        raise UnauthorizedError("Token is missing required claim: sub")
    return payload


def get_bearer_token(authorization: str | None) -> str:
    """
    Extract bearer token from Authorization header.

    Raises:
        UnauthorizedError: If header is missing or malformed.
    """
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("Invalid Authorization header format. Expected: Bearer <token>")
    return authorization.split(" ", 1)[1].strip()


def current_actor(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Actor:
    """
    FastAPI dependency resolving the acting user.

    Usage:
        @router.put("/{recipe_id}")
        def update(recipe_id: int, actor: Actor = Depends(current_actor)):
            ...
    """
    payload = verify_jwt(get_bearer_token(authorization))
    try:
        actor_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("Token subject is not a user id")
    return Actor(id=actor_id, name=payload.get("name"))
