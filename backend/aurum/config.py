"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (defaults are for local use only)
    - get_settings() is cached (lru_cache): single instance per process
    - Both services read the same settings; the signing secret must match across them

Design Decisions:
    - session_previous_secrets accepted for verification only: rotating the
      signing key does not invalidate credentials already in flight
    - default_price_per_gram as Decimal: money never passes through float
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://aurum:aurum@db:5432/goldtrading"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Session credentials
    session_secret: str = "gold-trading-secret-change-me"
    session_previous_secrets: list[str] = []
    session_ttl_seconds: int = 3600
    session_sweep_interval_seconds: int = 300
    session_retention_hours: int = 24

    # Pricing
    currency: str = "INR"
    default_price_per_gram: Decimal = Decimal("6500.00")

    # Anthropic (intent classification)
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-haiku-latest"
    anthropic_max_tokens: int = 300
    anthropic_max_retries: int = 2
    anthropic_timeout_seconds: int = 30
    anthropic_base_delay_ms: int = 500
    anthropic_max_delay_ms: int = 8_000
    classifier_history_limit: int = 5

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
