"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LINKLY_",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Linkly"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Redirect rate limiting (per client key)
    rate_limit_capacity: int = 100
    rate_limit_window_seconds: float = 60.0
    # When False a denied visit is logged and still served
    enforce_rate_limit: bool = False

    # Management endpoint limits (slowapi syntax)
    management_rate_limit: str = "100/minute"
    create_link_rate_limit: str = "60/hour"

    # Links
    alias_length: int = 6
    alias_max_attempts: int = 10
    default_owner: str = "user_1"
    seed_demo_links: bool = False

    # Observability
    environment: str = "development"
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = 0.1
    otlp_endpoint: str = ""
    otlp_insecure: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
