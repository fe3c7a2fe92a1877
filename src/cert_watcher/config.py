"""Environment-driven settings."""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="CERT_WATCHER_", extra="ignore"
    )

    port: int = Field(443, ge=1, le=65535)
    connect_timeout: float = Field(5.0, gt=0)
    alert_threshold_days: int = 30
    max_chain_depth: int = Field(10, ge=1)
    cors_origins: List[str] = ["*"]


settings = Settings()
