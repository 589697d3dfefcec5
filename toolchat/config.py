"""Application configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openrouter_api_key: str = Field(..., alias="OPENROUTER_API_KEY")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        alias="OPENROUTER_BASE_URL",
    )
    # Sessions start on this model until the client sends a "model" frame.
    default_model: str = Field(default="meta-llama/llama-4-scout", alias="DEFAULT_MODEL")
    database_path: Path = Field(default=Path("toolchat.db"), alias="DATABASE_PATH")
    context_window_messages: int = Field(default=40, alias="CONTEXT_WINDOW_MESSAGES")
    planner_temperature: float = Field(default=0.2, alias="PLANNER_TEMPERATURE")
    planner_max_tokens: int = Field(default=200, alias="PLANNER_MAX_TOKENS")
    tool_timeout_seconds: float = Field(default=12.0, alias="TOOL_TIMEOUT_SECONDS")
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")
    session_ttl_hours: int = Field(default=24, alias="SESSION_TTL_HOURS")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()
