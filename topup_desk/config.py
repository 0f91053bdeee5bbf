"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets, bot tokens or connection strings in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Topup Desk"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/topup_desk"
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Ledger
    TOPUP_REFERENCE_PREFIX: str = "TOPUP-"

    # Telegram bot used to notify admins
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    TELEGRAM_ADMIN_CHAT_ID: str = os.getenv("TELEGRAM_ADMIN_CHAT_ID", "")
    TELEGRAM_API_BASE: str = os.getenv(
        "TELEGRAM_API_BASE", "https://api.telegram.org"
    ).rstrip("/")
    TELEGRAM_WEBHOOK_URL: str = os.getenv("TELEGRAM_WEBHOOK_URL", "")
    TELEGRAM_WEBHOOK_SECRET: str = os.getenv("TELEGRAM_WEBHOOK_SECRET", "")
    TELEGRAM_TIMEOUT_SECONDS: float = float(
        os.getenv("TELEGRAM_TIMEOUT_SECONDS", "10")
    )

    # Public admin UI address for the notification link button.
    # Telegram refuses button URLs like localhost, so empty means no button.
    ADMIN_PANEL_URL: str = os.getenv("ADMIN_PANEL_URL", "").rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Using lru_cache means the Settings object is created once
    and reused for all subsequent calls.
    """
    return Settings()
