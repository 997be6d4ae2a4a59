"""
API request and response models for authgate REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Field names are camelCase because that is the wire format clients already
consume (userId, subscriptionStatus, ...).
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body for POST /auth/signup and POST /auth/login.

    Both fields are optional at the schema level: a missing email or password
    is reported by the account service as 400 "Missing email or password",
    the same message for absent, null and empty values.
    """

    email: Optional[str] = None
    password: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """User block returned by signup and login."""

    model_config = ConfigDict(frozen=True)

    userId: str
    email: Optional[str]
    subscriptionStatus: str


class AuthResponse(BaseModel):
    """Response for POST /auth/signup (custom token) and POST /auth/login (ID token)."""

    model_config = ConfigDict(frozen=True)

    token: str
    user: UserSummary


class MeResponse(BaseModel):
    """Response for GET /auth/me.

    user is the stored document as read, with whatever fields and types its
    writers gave it, or the UserSummary fields when no document exists.
    """

    user: dict[str, Any]


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    error: str


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
