"""
Application configuration loaded from environment variables.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """TaskFlow server configuration."""

    model_config = SettingsConfigDict(env_prefix="TF_", env_file=".env", extra="ignore")

    # Persistence
    snapshot_path: Optional[str] = None  # JSON snapshot file; unset keeps the store in memory only
    seed_demo_data: bool = True  # seed demo tasks when no snapshot exists

    # Logging
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    log_format: Literal["json", "text"] = "json"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # CORS
    cors_origins: list[str] = ["http://localhost:9002"]

    @field_validator("log_level", mode="before")
    @classmethod
    def lowercase_level(cls, value):
        return value.lower() if isinstance(value, str) else value


@lru_cache
def get_settings() -> Settings:
    return Settings()
