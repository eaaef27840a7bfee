"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the back-office access layer happen here.
No module should call os.getenv() or os.environ.get() directly -- import
get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Dev mode (DEBUG=true) generates missing signing secrets with a
      warning; production mode refuses to start without them.

Security notes:
  [S1] Access and refresh tokens are signed with two different secrets. If
       they were equal, a leaked refresh secret would also mint access tokens.
       Equal secrets are rejected at startup.

  [S2] Secrets shorter than 32 chars are rejected outright. HS256 signing
       relies on key entropy -- a short key weakens every issued token.

  [S3] password_hash_rounds below 12 is rejected outside DEBUG mode. Tests
       lower it to bcrypt's minimum (4) for speed.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("backoffice.config")

_MIN_SECRET_LENGTH = 32
_MIN_PASSWORD_ROUNDS = 12


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    database_url: str = "sqlite:///backoffice_auth.db"

    # ------------------------------------------------------------------
    # Token signing
    #
    # Empty string is the sentinel for "not configured". The validator
    # either generates dev secrets or raises, so callers never see "".
    # ------------------------------------------------------------------

    jwt_secret: str = ""
    jwt_refresh_secret: str = ""

    access_token_expire_seconds: int = 15 * 60
    admin_access_token_expire_seconds: int = 60 * 60
    refresh_token_expire_seconds: int = 7 * 24 * 60 * 60

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    password_hash_rounds: int = 12
    # Refresh tokens are high-entropy; a cheaper cost is enough.
    refresh_token_hash_rounds: int = 10

    # ------------------------------------------------------------------
    # Account policy
    # ------------------------------------------------------------------

    guard_last_super_admin: bool = True

    # ------------------------------------------------------------------
    # Rate limiting (slowapi limit strings)
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    register_rate_limit: str = "3/minute"
    login_rate_limit: str = "5/minute"
    refresh_rate_limit: str = "10/minute"
    create_admin_rate_limit: str = "3/minute"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the signing-secret and hashing-cost policy [S1][S2][S3].

        Dev mode (DEBUG=true): auto-generate missing secrets with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if either secret is missing.
        """
        for field in ("jwt_secret", "jwt_refresh_secret"):
            if getattr(self, field):
                continue
            if not self.debug:
                raise ValueError(
                    f"{field.upper()} is required in production mode. "
                    "Set it in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
            setattr(self, field, secrets.token_hex(32))
            logger.warning("Using auto-generated %s. Sessions will not persist across restarts.", field.upper())

        if len(self.jwt_secret) < _MIN_SECRET_LENGTH or len(self.jwt_refresh_secret) < _MIN_SECRET_LENGTH:
            raise ValueError(f"JWT secrets must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.jwt_secret == self.jwt_refresh_secret:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must differ.")
        if self.password_hash_rounds < _MIN_PASSWORD_ROUNDS and not self.debug:
            raise ValueError(f"PASSWORD_HASH_ROUNDS must be at least {_MIN_PASSWORD_ROUNDS}.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
