"""
Security module: Authentication (JWT bearer tokens).
"""

from shared.security.auth import (
    Actor,
    sign_jwt,
    verify_jwt,
    get_bearer_token,
    current_actor,
)

__all__ = [
    "Actor",
    "sign_jwt",
    "verify_jwt",
    "get_bearer_token",
    "current_actor",
]
