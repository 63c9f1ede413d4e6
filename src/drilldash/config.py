"""Configuration management for drilldash.

Loads settings from environment variables or a .env file with a clear
priority chain.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from drilldash.exceptions import ConfigurationError


class DrillDashSettings(BaseSettings):
    """Application settings loaded from environment variables and .env files.

    Priority (highest to lowest):
      1. Explicit constructor arguments
      2. Environment variables (DRILLDASH_BACKEND_URL, DRILLDASH_API_KEY, etc.)
      3. .env file in current directory
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend query endpoint
    drilldash_backend_url: Annotated[str, Field(description="Base URL of the query backend")] = ""
    drilldash_api_key: Annotated[
        str, Field(description="Bearer token for the backend", repr=False)
    ] = ""
    drilldash_chart_data_path: Annotated[
        str, Field(description="Chart data endpoint path")
    ] = "/api/database/chart-data"
    drilldash_request_timeout: Annotated[
        float, Field(gt=0, description="Per-request timeout in seconds")
    ] = 30.0

    # Query defaults
    drilldash_default_limit: Annotated[
        int, Field(ge=1, description="Row limit for simple-mode queries")
    ] = 50

    # Refresh
    drilldash_auto_refresh_interval: Annotated[
        int, Field(description="Seconds between auto-refresh ticks (0 = disabled)")
    ] = 0

    @field_validator("drilldash_backend_url")
    @classmethod
    def normalize_backend_url(cls, v: str) -> str:
        if not v:
            return v
        v = v.rstrip("/")
        if not v.startswith("http"):
            v = f"https://{v}"
        return v

    @field_validator("drilldash_chart_data_path")
    @classmethod
    def validate_chart_data_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"chart data path must start with '/', got {v!r}")
        return v

    @field_validator("drilldash_auto_refresh_interval")
    @classmethod
    def validate_refresh_interval(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"auto refresh interval must be >= 0, got {v}")
        return v

    @property
    def backend_configured(self) -> bool:
        return bool(self.drilldash_backend_url)

    def require_backend(self) -> None:
        """Raise if the backend URL is not configured."""
        if not self.drilldash_backend_url:
            raise ConfigurationError(
                "DRILLDASH_BACKEND_URL is not set. Set it in .env or as an environment variable."
            )


# Singleton-ish: lazily loaded on first access
_settings: DrillDashSettings | None = None


def get_settings(**overrides: str) -> DrillDashSettings:
    """Get or create the application settings singleton."""
    global _settings
    if _settings is None or overrides:
        _settings = DrillDashSettings(**overrides)
    return _settings


def reset_settings() -> None:
    """Reset cached settings (useful for testing)."""
    global _settings
    _settings = None
