from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .constraint import DEFAULT_CONFIG_PATH, ENV_PREFIX


class Settings(BaseSettings):
    """Process settings sourced from environment variables and ``.env``."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_file=".env", extra="ignore")

    config_path: Path = DEFAULT_CONFIG_PATH
    api_token: str | None = None
    organization_id: str | None = None
    enable_local_api: bool | None = None


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
