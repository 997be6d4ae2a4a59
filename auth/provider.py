"""
auth/provider.py -- Identity provider client (Firebase Auth).

Wraps the four provider operations the gateway needs:

  create_account()        -- firebase_admin.auth.create_user
  sign_in_with_password() -- Identity Toolkit REST, accounts:signInWithPassword
  mint_custom_token()     -- firebase_admin.auth.create_custom_token
  verify_token()          -- firebase_admin.auth.verify_id_token

plus delete_account(), used by the signup flow to remove an account whose
user document could not be written.

The Admin SDK has no password grant, so sign-in is the one call made over
REST with requests; everything else goes through the SDK bound to the App
built in the FastAPI lifespan.

Error mapping:
  Every SDK / transport exception is translated into a core.errors class
  HERE. The password-grant endpoint reports failures as an identifier in
  error.message ("EMAIL_NOT_FOUND", "TOO_MANY_ATTEMPTS_TRY_LATER : ...");
  the identifier is looked up in _SIGN_IN_CREDENTIAL_CODES rather than
  substring-matched by callers.

No retries. Each call is attempted once.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import firebase_admin
import requests
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from auth.models import SignInResult
from core.config import Settings
from core.errors import (
    AccountExists,
    ConfigurationError,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    ProviderError,
)

logger = logging.getLogger("authgate.auth.provider")

# Identity Toolkit error identifiers that mean "wrong email or password".
# INVALID_LOGIN_CREDENTIALS replaces the first two when email enumeration
# protection is enabled on the project.
_SIGN_IN_CREDENTIAL_CODES = frozenset(
    {
        "EMAIL_NOT_FOUND",
        "INVALID_PASSWORD",
        "INVALID_LOGIN_CREDENTIALS",
    }
)


def _error_code(message: str) -> str:
    """Extract the identifier from an Identity Toolkit error message.

    "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account ..." -> "TOO_MANY_ATTEMPTS_TRY_LATER"
    """
    return message.split(":", 1)[0].strip()


class FirebaseIdentityProvider:
    """Identity provider client bound to one Firebase App.

    Usage:
        app = init_firebase_app(settings)
        provider = FirebaseIdentityProvider(app, settings)
        uid = provider.create_account("a@x.com", "pw123456")
        provider.close()
    """

    def __init__(
        self,
        app: Optional[firebase_admin.App],
        settings: Settings,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._app = app
        self._api_key = settings.web_api_key
        self._sign_in_url = f"{settings.identity_toolkit_url}/accounts:signInWithPassword"
        self._timeout = settings.request_timeout_seconds
        self._check_revoked = settings.check_revoked_tokens
        if session is None:
            session = requests.Session()
            # Single known endpoint -- never needs a long redirect chain.
            session.max_redirects = 3
        self._session = session

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, email: str, password: str) -> str:
        """Create an email/password account and return its uid."""
        try:
            record = firebase_auth.create_user(email=email, password=password, app=self._app)
        except firebase_auth.EmailAlreadyExistsError as e:
            raise AccountExists(str(e), code=e.code) from e
        except ValueError as e:
            # The SDK validates email format and password length locally.
            raise InvalidInput(str(e)) from e
        except firebase_exceptions.FirebaseError as e:
            raise ProviderError(str(e), code=e.code) from e
        return record.uid

    def delete_account(self, account_id: str) -> None:
        """Delete an account. An account that is already gone counts as deleted."""
        try:
            firebase_auth.delete_user(account_id, app=self._app)
        except firebase_auth.UserNotFoundError:
            logger.info("Account %s already absent, nothing to delete", account_id)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise ProviderError(str(e)) from e

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def sign_in_with_password(self, email: str, password: str) -> SignInResult:
        """Exchange email + password for an ID token via the REST password grant."""
        if not self._api_key:
            raise ConfigurationError("Identity Toolkit API Key missing")

        try:
            resp = self._session.post(
                self._sign_in_url,
                params={"key": self._api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"Identity Toolkit request failed: {e}") from e

        try:
            data: Any = resp.json()
        except ValueError as e:
            raise ProviderError(f"Identity Toolkit returned a non-JSON response (HTTP {resp.status_code})") from e

        if not resp.ok:
            message = _extract_error_message(data) or f"Identity Toolkit returned HTTP {resp.status_code}"
            code = _error_code(message)
            if code in _SIGN_IN_CREDENTIAL_CODES:
                raise InvalidCredentials(message, code=code)
            raise ProviderError(message, code=code)

        if not isinstance(data, dict) or not data.get("localId") or not data.get("idToken"):
            raise ProviderError("Identity Toolkit response missing localId/idToken")

        return SignInResult(
            account_id=data["localId"],
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken"),
            expires_in=_parse_expires_in(data.get("expiresIn")),
            email=data.get("email"),
        )

    def mint_custom_token(self, account_id: str) -> str:
        try:
            token = firebase_auth.create_custom_token(account_id, app=self._app)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise ProviderError(str(e)) from e
        return token.decode("utf-8") if isinstance(token, bytes) else token

    def verify_token(self, raw_token: str) -> dict[str, Any]:
        """Verify a Firebase ID token and return its decoded claims.

        Malformed, expired, revoked and badly-signed tokens all surface as
        InvalidToken, as does a failure to fetch the signing certificates.
        """
        try:
            return firebase_auth.verify_id_token(raw_token, app=self._app, check_revoked=self._check_revoked)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise InvalidToken(str(e)) from e

    def close(self) -> None:
        self._session.close()


def _parse_expires_in(raw: Any) -> Optional[int]:
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ProviderError(f"Identity Toolkit returned an invalid expiresIn: {raw!r}") from e


def _extract_error_message(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None
