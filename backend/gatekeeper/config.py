"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Session timeouts are whole seconds; deadlines are computed from them at state entry

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://gatekeeper:gatekeeper@db:5432/gatekeeper"
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

    # Profile lookups (read-only external API)
    profile_api_url: str = "http://profile-api:5000"
    profile_api_timeout_seconds: float = 10.0

    # Bot gateway (role grants, direct messages, channel messages)
    gateway_url: str = "http://bot-gateway:8080"
    gateway_token: str = "gateway-placeholder"
    gateway_timeout_seconds: float = 5.0

    # Verification sessions
    name_selection_timeout_seconds: int = 2 * 60
    proof_window_seconds: int = 20 * 60
    manual_consent_timeout_seconds: int = 2 * 60
    check_stall_timeout_seconds: int = 5 * 60
    reaper_interval_seconds: int = 15

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
