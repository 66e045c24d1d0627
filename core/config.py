"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Gatehouse happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_ttl_seconds -> SESSION_TTL_SECONDS).

  @model_validator(mode="after"): cross-field checks once every field is
      resolved. Session lifetime and retry bounds are validated here so a bad
      deployment fails at startup rather than on the first sign-in.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("gatehouse.config")


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
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Storage (empty string = the store's built-in SQLite file)
    # ------------------------------------------------------------------

    accounts_db_url: str = ""
    sessions_db_url: str = ""

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    # Server-side lifetime of a stored session. Matches the cookie max-age so
    # a replayed cookie stops working when the browser would have dropped it.
    # 0 disables server-side expiry (stored sessions live until sign-out).
    session_ttl_seconds: int = 86400
    # How many times the sign-in route re-runs issue_session() after an id
    # collision before giving up with a 500.
    session_issue_attempts: int = 3

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_sessions(self) -> "Settings":
        """Reject nonsensical session settings.

        A negative TTL has no meaning. Zero issue attempts would make sign-in
        impossible. A TTL of 0 is allowed but logged, since it means sessions
        are only ever removed by an explicit sign-out.
        """
        if self.session_ttl_seconds < 0:
            raise ValueError("SESSION_TTL_SECONDS must be >= 0.")
        if self.session_issue_attempts < 1:
            raise ValueError("SESSION_ISSUE_ATTEMPTS must be >= 1.")
        if self.session_ttl_seconds == 0:
            logger.warning("WARNING: Server-side session expiry is disabled (SESSION_TTL_SECONDS=0).")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
