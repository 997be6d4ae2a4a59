"""
auth/service.py -- Account orchestration: signup, login, who-am-i.

AccountService composes the identity provider client and the user record
store. It receives both through its constructor (built once in the FastAPI
lifespan) and holds no per-request state.

Outcomes are reported as core.errors exceptions. The HTTP layer turns them
into status codes; messages raised here for 4xx outcomes are the exact
strings the caller sees.

Partial failure in signup:
  If the account is created but its user document cannot be written, the
  account is deleted again (compensate_orphaned_accounts=True) so the email
  can be reused. A failed deletion is logged; the caller still gets the
  original StoreError.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from typing import Optional

from auth.models import DEFAULT_SUBSCRIPTION_STATUS, AuthResult, CallerContext, UserRecord
from auth.provider import FirebaseIdentityProvider
from auth.store import UserRecordStore
from core.errors import AccountExists, InvalidCredentials, InvalidInput, ProviderError, StoreError

logger = logging.getLogger("authgate.auth.service")

MISSING_CREDENTIALS_MESSAGE = "Missing email or password"


def _require_credentials(email: Optional[str], password: Optional[str]) -> None:
    if not email or not password:
        raise InvalidInput(MISSING_CREDENTIALS_MESSAGE)


class AccountService:
    def __init__(
        self,
        provider: FirebaseIdentityProvider,
        store: UserRecordStore,
        compensate_orphaned_accounts: bool = True,
    ) -> None:
        self._provider = provider
        self._store = store
        self._compensate = compensate_orphaned_accounts

    def signup(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """Create an account, its user document, and a custom token for it.

        Raises InvalidInput (missing or rejected credentials), AccountExists,
        StoreError or ProviderError.
        """
        _require_credentials(email, password)

        try:
            account_id = self._provider.create_account(email, password)
        except AccountExists as e:
            logger.info("Signup rejected, email already registered (code=%s)", e.code)
            raise AccountExists("Email already in use", code=e.code) from e

        try:
            record = self._store.upsert(account_id, email)
        except StoreError:
            logger.exception("User document write failed after creating account %s", account_id)
            self._remove_orphaned_account(account_id)
            raise

        token = self._provider.mint_custom_token(account_id)
        logger.info("Signup complete for account %s", account_id)
        return AuthResult(
            token=token,
            user=UserRecord(
                user_id=account_id,
                email=email,
                subscription_status=record.subscription_status or DEFAULT_SUBSCRIPTION_STATUS,
            ),
        )

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """Sign in with email + password and attach the stored subscription status.

        Raises InvalidInput, InvalidCredentials, ConfigurationError,
        ProviderError or StoreError.
        """
        _require_credentials(email, password)

        try:
            result = self._provider.sign_in_with_password(email, password)
        except InvalidCredentials as e:
            logger.info("Login rejected (code=%s)", e.code)
            raise InvalidCredentials("Invalid email or password", code=e.code) from e

        record = self._store.get(result.account_id)
        status = record.subscription_status if record else DEFAULT_SUBSCRIPTION_STATUS
        logger.info("Login complete for account %s", result.account_id)
        return AuthResult(
            token=result.id_token,
            user=UserRecord(user_id=result.account_id, email=email, subscription_status=status),
        )

    def who_am_i(self, caller: CallerContext) -> UserRecord:
        """Return the caller's stored record, or a synthesized default.

        The synthesized record is NOT written back to the store.
        """
        record = self._store.get(caller.account_id)
        if record is None:
            return UserRecord(
                user_id=caller.account_id,
                email=caller.email,
                subscription_status=DEFAULT_SUBSCRIPTION_STATUS,
            )
        return record

    def _remove_orphaned_account(self, account_id: str) -> None:
        if not self._compensate:
            logger.warning("Account %s left without a user document", account_id)
            return
        try:
            self._provider.delete_account(account_id)
        except ProviderError:
            logger.exception("Could not delete orphaned account %s", account_id)
        else:
            logger.info("Deleted orphaned account %s", account_id)
