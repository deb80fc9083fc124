"""
Configuration management using Pydantic Settings.
"""
from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API
    PORT: int = 8000
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # Database
    DATABASE_URL: str = "sqlite:///./drugclaim.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Leases
    LEASE_TTL_SECONDS: int = 600
    HEARTBEAT_INTERVAL_SECONDS: int = 30

    # Admin
    ADMIN_DASHBOARD_TOKEN: str = "change-this-admin-token"

    # Resource catalogue
    SEED_RESOURCES_ON_STARTUP: bool = False
    DEFAULT_RESOURCE_COUNT: int = 20

    @model_validator(mode="after")
    def check_heartbeat_interval(self) -> "Settings":
        # At least one missed beat must fit inside the TTL.
        if self.HEARTBEAT_INTERVAL_SECONDS <= 0:
            raise ValueError("HEARTBEAT_INTERVAL_SECONDS must be positive")
        if self.HEARTBEAT_INTERVAL_SECONDS * 3 > self.LEASE_TTL_SECONDS:
            raise ValueError(
                f"HEARTBEAT_INTERVAL_SECONDS ({self.HEARTBEAT_INTERVAL_SECONDS}s) must be <= "
                f"LEASE_TTL_SECONDS/3 ({self.LEASE_TTL_SECONDS / 3:.0f}s)"
            )
        return self

    @property
    def sync_database_url(self) -> str:
        """DATABASE_URL with async drivers swapped for their sync counterparts."""
        return self.DATABASE_URL.replace("postgresql+asyncpg://", "postgresql+psycopg2://")


# Singleton instance
settings = Settings()
