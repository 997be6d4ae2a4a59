"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for authgate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. web_api_key -> WEB_API_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs after all fields are resolved. A missing
      WEB_API_KEY is NOT a startup failure -- password login degrades to a
      ConfigurationError at request time, signup and /auth/me keep working.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")

_IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False

    # ------------------------------------------------------------------
    # Firebase
    # ------------------------------------------------------------------

    # Web API key for the Identity Toolkit REST sign-in endpoint.
    # Empty string means "not configured".
    web_api_key: str = ""
    firebase_project_id: str = ""
    # Path to a service account JSON file. Empty = Application Default Credentials.
    google_application_credentials: str = ""
    firebase_app_name: str = "authgate"
    # host:port of the Firebase Auth emulator, e.g. "127.0.0.1:9099".
    firebase_auth_emulator_host: str = ""
    identity_toolkit_url: str = _IDENTITY_TOOLKIT_URL
    users_collection: str = "users"
    check_revoked_tokens: bool = False

    # ------------------------------------------------------------------
    # Outbound HTTP
    # ------------------------------------------------------------------

    request_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------

    # True echoes internal error text on 500 responses (historic behaviour).
    # False replaces it with a generic message; details stay in the log.
    expose_internal_errors: bool = True
    # Delete the identity-provider account when the user document cannot be
    # written during signup.
    compensate_orphaned_accounts: bool = True

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    auth_rate_limit: str = "10/minute"
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def resolve_identity_toolkit_url(self) -> "Settings":
        """Point the REST sign-in URL at the Auth emulator when one is configured.

        firebase-admin reads FIREBASE_AUTH_EMULATOR_HOST on its own for SDK
        calls; the REST endpoint has to be redirected here so password login
        hits the same emulator.
        """
        if self.firebase_auth_emulator_host and self.identity_toolkit_url == _IDENTITY_TOOLKIT_URL:
            self.identity_toolkit_url = f"http://{self.firebase_auth_emulator_host}/identitytoolkit.googleapis.com/v1"
        self.identity_toolkit_url = self.identity_toolkit_url.rstrip("/")
        return self

    @model_validator(mode="after")
    def warn_missing_api_key(self) -> "Settings":
        if not self.web_api_key:
            logger.warning("WARNING: WEB_API_KEY not set. Password login will fail with a configuration error.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    This is the official FastAPI pattern for config (see FastAPI docs /advanced/settings/).

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
