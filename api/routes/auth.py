"""
api/routes/auth.py -- Signup, login and current-user REST endpoints.

Routes:
  POST /auth/signup  -- create account + user document; returns a custom token (201)
  POST /auth/login   -- email/password sign-in; returns a Firebase ID token (200)
  GET  /auth/me      -- current user document (requires Bearer ID token)

Handlers are plain `def`: the Admin SDK and Firestore client calls block,
so FastAPI runs these in its thread pool and the event loop stays free for
other requests while a call is outstanding.

Errors are raised as core.errors exceptions by the account service and the
verification dependency; api/main.py maps them to {"error": ...} responses.

Security:
  POST /signup and POST /login are rate-limited per IP (AUTH_RATE_LIMIT).
  Cache-Control: no-store on responses carrying a token.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import AuthResponse, CredentialsRequest, MeResponse, UserSummary
from auth.dependencies import get_caller_context
from auth.models import AuthResult, CallerContext
from auth.service import AccountService
from core.config import get_settings

# Auth policy:
# - POST /auth/signup: public
# - POST /auth/login:  public
# - GET  /auth/me:     requires Bearer ID token (get_caller_context)
router = APIRouter()

_AUTH_RATE_LIMIT = get_settings().auth_rate_limit


def _auth_response(result: AuthResult, response: Response) -> AuthResponse:
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(token=result.token, user=UserSummary(**result.user.summary()))


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_AUTH_RATE_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/signup", response_model=AuthResponse, status_code=201)
def signup(request: Request, response: Response, body: Optional[CredentialsRequest] = None) -> AuthResponse:
    """Create an account, provision its user document and return a custom token.

    The custom token is meant to be exchanged by the client for a session
    (signInWithCustomToken); it is not an ID token.
    """
    service: AccountService = request.app.state.account_service
    body = body or CredentialsRequest()
    result = service.signup(body.email, body.password)
    return _auth_response(result, response)


@limiter.limit(_AUTH_RATE_LIMIT)
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, response: Response, body: Optional[CredentialsRequest] = None) -> AuthResponse:
    """Sign in with email and password; return the provider-issued ID token.

    Wrong password and unknown email produce the same 401 message.
    """
    service: AccountService = request.app.state.account_service
    body = body or CredentialsRequest()
    result = service.login(body.email, body.password)
    return _auth_response(result, response)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, caller: CallerContext = Depends(get_caller_context)) -> MeResponse:
    """Return the caller's user document.

    Callers without a document get {userId, email, subscriptionStatus: "free"};
    nothing is written in that case.
    """
    service: AccountService = request.app.state.account_service
    record = service.who_am_i(caller)
    if record.stored:
        return MeResponse(user=record.document)
    return MeResponse(user=UserSummary(**record.summary()).model_dump())
