"""
Runtime configuration helpers for the Huddle backend.

Loads DATABASE_URL and the collaborator settings from the environment, falling
back to the .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    # Required field, must come from the environment or .env
    database_url: str = Field(..., alias="DATABASE_URL")

    # Optional fields
    app_name: str = Field(default="Huddle Backend", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    # Identity gateway
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expires_minutes: int = Field(default=1440, alias="JWT_EXPIRES_MINUTES")
    identity_introspection_url: str | None = Field(default=None, alias="IDENTITY_INTROSPECTION_URL")
    identity_timeout: float = Field(default=5.0, alias="IDENTITY_TIMEOUT")

    # Poll summarization collaborator (OpenAI-compatible chat completions)
    summarizer_base_url: str = Field(default="https://api.openai.com/v1", alias="SUMMARIZER_BASE_URL")
    summarizer_api_key: str | None = Field(default=None, alias="SUMMARIZER_API_KEY")
    summarizer_model: str = Field(default="gpt-3.5-turbo", alias="SUMMARIZER_MODEL")
    summarizer_timeout: float = Field(default=15.0, alias="SUMMARIZER_TIMEOUT")
    summarizer_max_tokens: int = Field(default=200, alias="SUMMARIZER_MAX_TOKENS")
    summarizer_temperature: float = Field(default=0.7, alias="SUMMARIZER_TEMPERATURE")

    # Inbound poll webhook and the bot account that authors system messages
    poll_webhook_token: str | None = Field(default=None, alias="POLL_WEBHOOK_TOKEN")
    bot_username: str = Field(default="huddle-bot", alias="BOT_USERNAME")
    bot_display_name: str = Field(default="Huddle Bot", alias="BOT_DISPLAY_NAME")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
