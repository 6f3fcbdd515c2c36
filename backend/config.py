"""
myPip configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Auth (JWT issued by the identity provider)
    AUTH_JWT_KEY: str = os.environ.get("AUTH_JWT_KEY", "")
    AUTH_JWT_ALGORITHM: str = os.environ.get("AUTH_JWT_ALGORITHM", "HS256")
    AUTH_JWT_AUDIENCE: str = os.environ.get("AUTH_JWT_AUDIENCE", "")

    # Generation
    GENERATION_PROVIDER: str = os.environ.get("GENERATION_PROVIDER", "anthropic")
    GENERATION_MODEL: str = os.environ.get("GENERATION_MODEL", "claude-sonnet-4-20250514")
    GENERATION_MAX_TOKENS: int = int(os.environ.get("GENERATION_MAX_TOKENS", "16384"))
    GENERATION_TEMPERATURE: float = float(os.environ.get("GENERATION_TEMPERATURE", "0.7"))
    GENERATION_TIMEOUT_SECONDS: float = float(os.environ.get("GENERATION_TIMEOUT_SECONDS", "60"))
    USE_MOCK_LLM: bool = os.environ.get("USE_MOCK_LLM", "").lower() == "true"

    # AI Providers
    ANTHROPIC_API_KEY: str = os.environ.get("ANTHROPIC_API_KEY", "")
    OPENAI_API_KEY: str = os.environ.get("OPENAI_API_KEY", "")

    # Entitlements
    FREE_CREDITS: int = int(os.environ.get("FREE_CREDITS", "5"))
    UNLOCK_CODE: str = os.environ.get("UNLOCK_CODE", "")

    # Sessions
    SESSION_IDLE_MINUTES: int = int(os.environ.get("SESSION_IDLE_MINUTES", "120"))
    MAX_SESSIONS_PER_USER: int = 10

    # Rate Limits
    API_RATE_LIMIT_PER_MINUTE: int = int(os.environ.get("API_RATE_LIMIT_PER_MINUTE", "20"))  # per user

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")

    @property
    def PUBLIC_URL(self) -> str:
        url = os.environ.get("PUBLIC_URL")
        if url:
            return url
        return "http://localhost:8000" if self.ENVIRONMENT == "development" else "https://mypip.app"


# Singleton instance
settings = Settings()

_testing = os.environ.get("TESTING", "").lower() == "true"


def check_generation_settings(provider: str | None = None) -> None:
    """Raise if the selected generation provider has no API key."""
    provider = provider or settings.GENERATION_PROVIDER
    if settings.USE_MOCK_LLM or provider == "mock":
        return
    if provider == "anthropic" and not settings.ANTHROPIC_API_KEY:
        raise RuntimeError("ANTHROPIC_API_KEY environment variable is required")
    if provider == "openai" and not settings.OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY environment variable is required")


def check_server_settings() -> None:
    """Validate everything the API server needs (skipped in test mode)."""
    if _testing:
        return
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL environment variable is required")
    if not settings.AUTH_JWT_KEY:
        raise RuntimeError("AUTH_JWT_KEY environment variable is required")
    check_generation_settings()
