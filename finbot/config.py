"""finbot configuration management."""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger("finbot.config")


class FinbotSettings(BaseSettings):
    """Settings loaded from environment variables or .env file."""

    # Lark / Feishu app credentials
    app_id: str = Field(default="", description="Lark app ID")
    app_secret: str = Field(default="", description="Lark app secret")
    domain: str = Field(default="feishu", description="Open platform: 'feishu' or 'lark'")

    # Storage
    database_path: str = Field(default="data/fin_bot.db", description="SQLite database file")

    # HTTP server
    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, description="HTTP port")
    app_env: str = Field(default="development", description="Deployment environment")

    # Broadcast
    chat_page_size: int = Field(default=50, description="Page size for chat listing")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def has_credentials(self) -> bool:
        return bool(self.app_id and self.app_secret)


def load_settings() -> FinbotSettings:
    """Load settings from environment."""
    settings = FinbotSettings()

    if not settings.has_credentials:
        logger.warning("APP_ID and APP_SECRET are not set, Lark API calls will fail.")

    return settings


def mask_secret(value: str) -> str:
    """Hide most of a credential, keeping the first and last 4 characters."""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"
