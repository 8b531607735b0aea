import os
import sys
from functools import lru_cache
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env files."""

    app_name: str = "Portfolio Consultant API"
    environment: str = "dev"
    debug: bool = True
    version: str = "0.1.0"
    database_url: str = "sqlite:///./portfolio_consultant.db"
    database_echo: bool = False

    session_secret: str | None = None
    session_ttl_seconds: int = 60 * 60 * 24 * 7

    admin_username: str | None = None
    admin_password: str | None = None
    admin_email: str | None = None

    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_paid_price_id: str | None = None
    stripe_premium_price_id: str | None = None
    stripe_mentorship_price_id: str | None = None
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PC_",
        extra="ignore",
    )

    def dict_for_logging(self) -> dict[str, Any]:
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "debug": self.debug,
            "version": self.version,
            "database_url": self.database_url,
            "stripe_configured": bool(self.stripe_secret_key),
        }


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    settings = Settings()

    # Keep pytest runs away from the development database file and give them
    # a signing key so session cookies work without extra configuration.
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        settings.database_url = "sqlite:///./portfolio_consultant_test.db"
        if not settings.session_secret:
            settings.session_secret = "pytest-session-secret"

    return settings


__all__ = ["Settings", "get_settings"]
