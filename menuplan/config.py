from __future__ import annotations

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List, Literal


class Settings(BaseSettings):
    # Core
    app_name: str = Field(default="menuplan-server")
    environment: str = Field(default="dev")  # dev|staging|prod
    log_json: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    # API
    cors_allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    menu_rate_limit: str = Field(default="10/minute")

    # Completion service
    openai_api_key: str | None = Field(default=None)
    openai_base_url: str | None = Field(default=None)
    completion_backend: Literal["openai", "http"] = Field(default="openai")
    completion_url: str = Field(default="https://api.openai.com/v1/chat/completions")
    menu_model: str = Field(default="gpt-4o-mini")
    menu_temperature: float = Field(default=0.2)
    menu_max_output_tokens: int = Field(default=8000)
    completion_timeout_seconds: int = Field(default=45, ge=5, le=120)

    # Retry loop
    menu_max_attempts: int = Field(default=5, ge=1, le=10)
    menu_backoff_base_seconds: float = Field(default=1.0, ge=0)
    menu_backoff_max_seconds: float = Field(default=5.0, ge=0)

    # Observability
    sentry_dsn: str | None = Field(default=None)
    sentry_traces_sample_rate: float = Field(default=0.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def _csv_to_list(cls, v):
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
