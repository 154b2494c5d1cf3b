"""Engine configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Numeric tuning values are validated at load time;
DATABASE_URL is checked lazily when the policy store engine is first used.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment and .env."""

    # App
    app_name: str = "rbac-engine"
    app_version: str = "1.0.0"
    debug: bool = False

    # Policy store (SQLAlchemy async URL, e.g. postgresql+asyncpg://...)
    database_url: str = ""
    database_echo: bool = False
    # Optional pool/driver overrides (None = use defaults in database.py)
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None

    # Redis cache for resolved permission maps
    redis_enabled: bool = True
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_max_connections: int = 10
    cache_ttl_permissions: int = 300

    # Gate behaviour on transient store failures (retry, then deny)
    store_retry_attempts: int = 2
    store_retry_backoff_seconds: float = 0.05

    # Decision audit: persist decisions to authorization_audit as well as logging them
    audit_persist_decisions: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_tuning(self) -> "Settings":
        """Reject negative retry counts, backoffs and non-positive cache TTLs."""
        if self.store_retry_attempts < 0:
            raise ValueError(
                f"store_retry_attempts must be >= 0, got: {self.store_retry_attempts}"
            )
        if self.store_retry_backoff_seconds < 0:
            raise ValueError(
                "store_retry_backoff_seconds must be >= 0, "
                f"got: {self.store_retry_backoff_seconds}"
            )
        if self.cache_ttl_permissions <= 0:
            raise ValueError(
                f"cache_ttl_permissions must be > 0, got: {self.cache_ttl_permissions}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (singleton)."""
    return Settings()
