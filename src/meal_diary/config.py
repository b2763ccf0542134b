"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "medium"
    openai_store: bool = False
    inference_backend: str = "openai"
    inference_base_url: str | None = None
    inference_api_key: str | None = None
    inference_timeout_seconds: float | None = None
    diary_timezone: str = "UTC"
    calendar_cache_backend: str = "supabase"
    calendar_cache_ttl_seconds: int = 1800
    session_idle_timeout_seconds: int = 3600
    finished_session_retention_seconds: int = 300
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
