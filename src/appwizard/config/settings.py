"""
Ambient settings using Pydantic.

Provides environment-based configuration loading with APPWIZARD_ prefix.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Project
    project_dir: Path = Path(".")

    # Debug
    debug: bool = False
    log_level: str = "WARNING"
    log_json: bool | None = None

    # Authentication
    auto_login: bool = True
    google_key_file: Path | None = None
    aws_profile: str | None = None

    # Mount probe
    probe_image: str = "alpine:latest"
    probe_timeout_seconds: int = 60

    # Healthcheck polling
    healthcheck_deadline_seconds: int = 120
    healthcheck_interval_seconds: float = 5.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "APPWIZARD_"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
