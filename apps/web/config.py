"""
Client configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # Remote SocialBug API
    SOCIALBUG_API_BASE_URL: str = "http://localhost:8081/api"
    REQUEST_TIMEOUT_SECONDS: float = 20.0

    # Local app (redirect target for provider consent pages)
    APP_BASE_URL: str = "http://localhost:5173"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 5173

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Session persistence
    SESSION_DATABASE_URL: str = "sqlite:///./socialbug_session.db"

    # Listing defaults
    CAMPAIGN_PAGE_SIZE: int = 20
    ITEM_PAGE_SIZE: int = 10
    POST_PAGE_SIZE: int = 10
    DEFAULT_SORT: str = "createdAt,desc"

    # Scheduling
    SCHEDULE_TIMEZONE: str = "UTC"

    # Security
    ENCRYPTION_KEY: str = "change_me_32_byte_key_for_prod"
    ALLOW_INSECURE_DEFAULTS: bool = True

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()


def connections_redirect_uri() -> str:
    """Return the callback URL handed to providers during authorization."""
    return f"{settings.APP_BASE_URL.rstrip('/')}/connections"


def validate_security_settings() -> None:
    """Fail fast when the placeholder encryption key is still configured."""
    if settings.ALLOW_INSECURE_DEFAULTS:
        return
    insecure_values = {
        "",
        "change_me_32_byte_key_for_prod",
        "your_32_byte_encryption_key_here",
    }
    encryption_key = (settings.ENCRYPTION_KEY or "").strip()
    if encryption_key in insecure_values or len(encryption_key) < 32:
        raise ValueError("ENCRYPTION_KEY is insecure. Configure a strong non-default key (>=32 chars).")
