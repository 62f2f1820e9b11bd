"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SessionVault happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  Immutable value: Settings is frozen. The service layer receives it at
      construction time, so tests build their own Settings(...) with a small
      PBKDF2 iteration count instead of patching module constants.

  @model_validator(mode="after"): cross-field validation after all fields are
      resolved from the environment. The token cache must never outlive the
      durable token it vouches for.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
db/, or cache/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sessionvault.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'db' / 'sessionvault.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `database_url` reads from DATABASE_URL, `pool_size` from POOL_SIZE.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL
    # Hard upper bound on concurrent store operations. One is a valid
    # deployment; callers simply queue on acquire().
    pool_size: int = Field(default=4, ge=1)

    # ------------------------------------------------------------------
    # Password hashing (PBKDF2-HMAC-SHA512)
    # ------------------------------------------------------------------

    pbkdf2_iterations: int = Field(default=10_000, ge=1)
    derived_key_bytes: int = Field(default=32, ge=16)  # 256-bit key
    salt_bytes: int = Field(default=16, ge=8)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    token_bytes: int = Field(default=64, ge=16)
    token_expire_seconds: int = Field(default=60 * 60 * 24 * 30, gt=0)  # 30 days
    token_cache_ttl_seconds: int = Field(default=60, gt=0)

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_cache_ttl(self) -> "Settings":
        """Reject a cache TTL that is not strictly shorter than the token lifetime.

        A cached validation may outlive a logout by up to one TTL. Letting it
        outlive the durable expiry as well would keep expired sessions alive.
        """
        if self.token_cache_ttl_seconds >= self.token_expire_seconds:
            raise ValueError("TOKEN_CACHE_TTL_SECONDS must be shorter than TOKEN_EXPIRE_SECONDS.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
