"""
auth/dependencies.py -- FastAPI Depends() helpers for bearer-token authentication.

get_caller_context() is the token verification step for protected routes:
  1. Authorization header must start with "Bearer ". Anything else -> 401
     "Missing or invalid token".
  2. The token is verified by the identity provider client on app.state.
     Any failure -> 401 "Unauthorized". The reason is logged only.
  3. On success the CallerContext is stored on request.state.caller and
     returned to the route.

Because FastAPI resolves dependencies before calling the route, a raised
InvalidToken means the route body never runs.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import CallerContext
from auth.provider import FirebaseIdentityProvider
from core.errors import InvalidToken

logger = logging.getLogger("authgate.auth.dependencies")

_BEARER_PREFIX = "Bearer "


def extract_bearer_token(request: Request) -> str | None:
    """Return the token from the Authorization header, or None if absent/malformed.

    The token is the second space-separated part, taken as is: "Bearer  tok"
    yields "" and fails verification like any other bad token.
    """
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None
    return header.split(" ")[1]


def get_caller_context(request: Request) -> CallerContext:
    """Require a verified Firebase ID token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(caller: CallerContext = Depends(get_caller_context)): ...
    """
    token = extract_bearer_token(request)
    if token is None:
        raise InvalidToken("Missing or invalid token")

    provider: FirebaseIdentityProvider = request.app.state.identity_provider
    try:
        claims = provider.verify_token(token)
    except Exception as e:
        # Provider and transport failures alike end as a plain 401.
        logger.warning("Token verification failed on %s: %s: %s", request.url.path, type(e).__name__, e)
        raise InvalidToken("Unauthorized") from e

    caller = CallerContext.from_claims(claims)
    if not caller.account_id:
        logger.warning("Token verification failed on %s: claims carry no uid", request.url.path)
        raise InvalidToken("Unauthorized")

    request.state.caller = caller
    return caller
