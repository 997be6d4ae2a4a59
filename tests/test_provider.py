"""
tests/test_provider.py -- Unit tests for FirebaseIdentityProvider error mapping.

The REST password grant is exercised with a MagicMock requests session; the
Admin SDK calls are patched on auth.provider.firebase_auth. No network.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from auth.provider import FirebaseIdentityProvider
from core.config import Settings
from core.errors import (
    AccountExists,
    ConfigurationError,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    ProviderError,
)


def _provider(api_key: str = "k-123", session: MagicMock | None = None) -> FirebaseIdentityProvider:
    settings = Settings(web_api_key=api_key, firebase_auth_emulator_host="")
    return FirebaseIdentityProvider(None, settings, session=session or MagicMock())


def _response(status_code: int, payload=None, json_error: bool = False) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = status_code < 400
    if json_error:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = payload
    return resp


def _error_payload(message: str) -> dict:
    return {"error": {"code": 400, "message": message, "errors": [{"message": message}]}}


class TestSignInWithPassword:
    def test_success_returns_account_and_token(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(
            200,
            {"localId": "uid-1", "idToken": "tok", "refreshToken": "r", "expiresIn": "3600", "email": "a@x.com"},
        )
        result = _provider(session=session).sign_in_with_password("a@x.com", "pw123456")

        assert result.account_id == "uid-1"
        assert result.id_token == "tok"
        assert result.refresh_token == "r"
        assert result.expires_in == 3600

        _, kwargs = session.post.call_args
        assert session.post.call_args[0][0].endswith("/accounts:signInWithPassword")
        assert kwargs["params"] == {"key": "k-123"}
        assert kwargs["json"] == {"email": "a@x.com", "password": "pw123456", "returnSecureToken": True}
        assert kwargs["timeout"] > 0

    @pytest.mark.parametrize("message", ["EMAIL_NOT_FOUND", "INVALID_PASSWORD", "INVALID_LOGIN_CREDENTIALS"])
    def test_credential_errors_map_to_invalid_credentials(self, message: str) -> None:
        session = MagicMock()
        session.post.return_value = _response(400, _error_payload(message))
        with pytest.raises(InvalidCredentials) as exc_info:
            _provider(session=session).sign_in_with_password("a@x.com", "wrong")
        assert exc_info.value.code == message

    def test_detail_suffix_is_stripped_from_code(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(
            400, _error_payload("TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account has been temporarily disabled")
        )
        with pytest.raises(ProviderError) as exc_info:
            _provider(session=session).sign_in_with_password("a@x.com", "pw")
        assert exc_info.value.code == "TOO_MANY_ATTEMPTS_TRY_LATER"
        assert "temporarily disabled" in exc_info.value.message

    def test_missing_api_key_is_configuration_error(self) -> None:
        session = MagicMock()
        with pytest.raises(ConfigurationError, match="API Key missing"):
            _provider(api_key="", session=session).sign_in_with_password("a@x.com", "pw")
        session.post.assert_not_called()

    def test_transport_failure_is_provider_error(self) -> None:
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("connection refused")
        with pytest.raises(ProviderError, match="connection refused"):
            _provider(session=session).sign_in_with_password("a@x.com", "pw")

    def test_non_json_response_is_provider_error(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(502, json_error=True)
        with pytest.raises(ProviderError, match="502"):
            _provider(session=session).sign_in_with_password("a@x.com", "pw")

    def test_success_without_token_is_provider_error(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(200, {"localId": "uid-1"})
        with pytest.raises(ProviderError):
            _provider(session=session).sign_in_with_password("a@x.com", "pw")

    @pytest.mark.parametrize("expires_in", ["soon", [3600]])
    def test_unparseable_expiry_is_provider_error(self, expires_in) -> None:
        session = MagicMock()
        session.post.return_value = _response(200, {"localId": "u", "idToken": "t", "expiresIn": expires_in})
        with pytest.raises(ProviderError, match="expiresIn"):
            _provider(session=session).sign_in_with_password("a@x.com", "pw")

    def test_missing_expiry_is_none(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(200, {"localId": "u", "idToken": "t"})
        assert _provider(session=session).sign_in_with_password("a@x.com", "pw").expires_in is None

    def test_emulator_host_redirects_sign_in_url(self) -> None:
        settings = Settings(web_api_key="k", firebase_auth_emulator_host="127.0.0.1:9099")
        session = MagicMock()
        session.post.return_value = _response(200, {"localId": "u", "idToken": "t"})
        FirebaseIdentityProvider(None, settings, session=session).sign_in_with_password("a@x.com", "pw")
        url = session.post.call_args[0][0]
        assert url == "http://127.0.0.1:9099/identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"


class TestCreateAccount:
    def test_returns_uid(self) -> None:
        with patch("auth.provider.firebase_auth.create_user", return_value=MagicMock(uid="uid-7")) as create:
            assert _provider().create_account("a@x.com", "pw123456") == "uid-7"
        create.assert_called_once_with(email="a@x.com", password="pw123456", app=None)

    def test_existing_email_is_account_exists(self) -> None:
        err = firebase_auth.EmailAlreadyExistsError("The user with the provided email already exists", None, None)
        with patch("auth.provider.firebase_auth.create_user", side_effect=err):
            with pytest.raises(AccountExists):
                _provider().create_account("a@x.com", "pw123456")

    def test_sdk_validation_error_is_invalid_input(self) -> None:
        err = ValueError('Malformed email address string: "nope".')
        with patch("auth.provider.firebase_auth.create_user", side_effect=err):
            with pytest.raises(InvalidInput, match="Malformed email"):
                _provider().create_account("nope", "pw123456")

    def test_other_firebase_error_is_provider_error(self) -> None:
        err = firebase_exceptions.UnavailableError("backend unavailable")
        with patch("auth.provider.firebase_auth.create_user", side_effect=err):
            with pytest.raises(ProviderError, match="backend unavailable"):
                _provider().create_account("a@x.com", "pw123456")


class TestTokens:
    def test_mint_custom_token_decodes_bytes(self) -> None:
        with patch("auth.provider.firebase_auth.create_custom_token", return_value=b"custom.jwt.value") as mint:
            assert _provider().mint_custom_token("uid-1") == "custom.jwt.value"
        mint.assert_called_once_with("uid-1", app=None)

    def test_mint_custom_token_failure_is_provider_error(self) -> None:
        err = firebase_exceptions.UnknownError("signing failed")
        with patch("auth.provider.firebase_auth.create_custom_token", side_effect=err):
            with pytest.raises(ProviderError):
                _provider().mint_custom_token("uid-1")

    def test_verify_token_returns_claims(self) -> None:
        claims = {"uid": "uid-1", "email": "a@x.com"}
        with patch("auth.provider.firebase_auth.verify_id_token", return_value=claims) as verify:
            assert _provider().verify_token("tok") == claims
        verify.assert_called_once_with("tok", app=None, check_revoked=False)

    @pytest.mark.parametrize(
        "err",
        [
            firebase_auth.ExpiredIdTokenError("Token expired", None),
            firebase_auth.InvalidIdTokenError("Invalid signature"),
            ValueError("Illegal ID token provided."),
        ],
    )
    def test_verify_failures_are_invalid_token(self, err: Exception) -> None:
        with patch("auth.provider.firebase_auth.verify_id_token", side_effect=err):
            with pytest.raises(InvalidToken):
                _provider().verify_token("tok")


class TestDeleteAccount:
    def test_missing_account_is_not_an_error(self) -> None:
        err = firebase_auth.UserNotFoundError("No user record found")
        with patch("auth.provider.firebase_auth.delete_user", side_effect=err):
            _provider().delete_account("uid-1")

    def test_failure_is_provider_error(self) -> None:
        err = firebase_exceptions.UnavailableError("backend unavailable")
        with patch("auth.provider.firebase_auth.delete_user", side_effect=err):
            with pytest.raises(ProviderError):
                _provider().delete_account("uid-1")
