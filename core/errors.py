"""
core/errors.py -- Closed error taxonomy shared by the provider client, the
record store, the account service and the HTTP layer.

Every failure that crosses a component boundary is one of the GatewayError
subclasses below. The provider client and the store translate library
exceptions into these at their edge, so the service never inspects free-text
messages and the API layer maps status codes from `status_code` alone.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    invalid_input = "invalid_input"
    account_exists = "account_exists"
    invalid_credentials = "invalid_credentials"
    invalid_token = "invalid_token"
    configuration = "configuration"
    provider = "provider"
    store = "store"


class GatewayError(Exception):
    """Base class. `kind` and `status_code` are fixed per subclass.

    `code` optionally carries the upstream identifier the error was mapped
    from (e.g. "EMAIL_NOT_FOUND") for logging.
    """

    kind: ErrorKind = ErrorKind.provider
    status_code: int = 500

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def is_client_error(self) -> bool:
        return self.status_code < 500


class InvalidInput(GatewayError):
    kind = ErrorKind.invalid_input
    status_code = 400


class AccountExists(GatewayError):
    kind = ErrorKind.account_exists
    status_code = 409


class InvalidCredentials(GatewayError):
    kind = ErrorKind.invalid_credentials
    status_code = 401


class InvalidToken(GatewayError):
    kind = ErrorKind.invalid_token
    status_code = 401


class ConfigurationError(GatewayError):
    kind = ErrorKind.configuration
    status_code = 500


class ProviderError(GatewayError):
    kind = ErrorKind.provider
    status_code = 500


class StoreError(GatewayError):
    kind = ErrorKind.store
    status_code = 500
