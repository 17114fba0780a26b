"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for RoleGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. bcrypt_rounds -> BCRYPT_ROUNDS). Type coercion and validation are
      built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. A bad value is a startup failure, never a
      per-request error.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from typing import Literal

from limits import parse
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("rolegate.config")


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
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Realm sent in the WWW-Authenticate challenge on 401 responses.
    auth_realm: str = "Realm"

    # Scheme used for newly encoded passwords. Stored hashes carry their own
    # {scheme} prefix, so changing this never invalidates existing hashes.
    password_scheme: Literal["bcrypt", "pbkdf2_sha256"] = "bcrypt"
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)
    pbkdf2_iterations: int = Field(default=310_000, ge=1000)

    # Seeded hashes are written to the log at startup when enabled.
    log_password_hashes: bool = False

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    request_rate_limit: str = "60/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("request_rate_limit")
    @classmethod
    def validate_rate_limit(cls, value: str) -> str:
        """Reject limit strings slowapi cannot parse (e.g. "60 per fortnight")."""
        parse(value)
        return value

    @model_validator(mode="after")
    def validate_auth(self) -> "Settings":
        """Reject settings that would leave the gate misconfigured.

        The realm is quoted into a header value, so it must be non-empty and
        free of double quotes. Hash logging is refused outside debug mode.
        """
        if not self.auth_realm or '"' in self.auth_realm:
            raise ValueError("AUTH_REALM must be non-empty and must not contain double quotes.")
        if self.log_password_hashes and not self.debug:
            raise ValueError("LOG_PASSWORD_HASHES requires DEBUG=true.")
        if self.bcrypt_rounds < 10:
            logger.warning("WARNING: BCRYPT_ROUNDS=%d is below the recommended minimum of 10.", self.bcrypt_rounds)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
