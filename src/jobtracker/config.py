from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "jobtracker"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8787
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/jobtracker.db"
    data_dir: Path = Path("./data")

    ai_api_key: str = ""
    ai_base_url: str = "https://api.openai.com/v1"
    ai_model: str = "gpt-4o-mini"
    ai_fallback_models: str = ""
    ai_timeout_sec: int = 90
    ai_stream_timeout_sec: int = 120
    ai_temperature: float = 0.7
    ai_max_tokens: int = 1000
    ai_stream_model_fallback: bool = False

    auth_header: str = "X-User-Id"
    cors_origins: str = "http://127.0.0.1:8787"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("ai_stream_timeout_sec", "ai_timeout_sec")
    @classmethod
    def validate_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    @property
    def is_production_like(self) -> bool:
        return self.app_env in {"production", "staging"}

    @property
    def ai_model_list(self) -> list[str]:
        return dedupe_models(self.ai_model, self.ai_fallback_models.split(","))

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def dedupe_models(primary: str, fallbacks: list[str]) -> list[str]:
    models: list[str] = []
    for name in [primary, *fallbacks]:
        name = name.strip()
        if name and name not in models:
            models.append(name)
    return models


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
