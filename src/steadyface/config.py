"""Environment-based configuration for SteadyFace."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from STEADYFACE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STEADYFACE_",
        case_sensitive=False,
    )

    # Authentication (None = disabled)
    api_key: str | None = None

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Scheduling
    detection_interval_ms: float = Field(default=100.0, ge=0)
    tick_interval_ms: float = Field(default=16.0, ge=0)

    # Smoothing (weight given to the previous stabilized value)
    smoothing_factor: float = Field(default=0.5, ge=0.0, le=1.0)

    # History / consensus
    history_capacity: int = Field(default=30, ge=1)
    history_sample_every: int = Field(default=5, ge=1)


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
