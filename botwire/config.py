from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Bot API
    bot_token: str = ""
    api_url: str = "https://api.telegram.org"
    request_timeout: float = 60.0

    # Long polling
    polling_timeout: int = 30  # seconds the server may hold getUpdates open
    polling_limit: int = 100  # 1-100
    allowed_updates: Optional[list[str]] = None  # None keeps the server-side filter

    # Webhook mode
    webhook_secret: str = ""  # Optional: for X-Telegram-Bot-Api-Secret-Token check

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="BOTWIRE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
