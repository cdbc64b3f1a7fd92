"""
Configuration settings for the CareCircle mirror API and client.
All deployment-specific values are loaded from environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "CareCircle API"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "production"

    # Server
    host: str = "0.0.0.0"
    port: int = 3005

    # Database (mirror store)
    database_url: str = "sqlite+aiosqlite:///./carecircle.db"
    database_echo: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Redis (optional stats cache, empty disables it)
    redis_url: str = ""
    stats_cache_ttl: int = 30

    # Client side
    mirror_api_url: str = "http://localhost:3005"
    mirror_timeout_seconds: float = 5.0
    ledger_timeout_seconds: float = 30.0


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
