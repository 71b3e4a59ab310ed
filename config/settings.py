"""
Module: settings

Purpose: Centralized configuration management for the visualization runtime.

Key Functions:
- get_settings: Load settings from environment variables
- LoomSettings: Pydantic settings model with validation

Architecture Notes:
- Uses pydantic-settings for type-safe configuration
- All settings have sensible defaults (offline, no asset fetching)
- Environment variables (LOOM_*) and a project .env file override defaults
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_FILE = PROJECT_ROOT / ".env"


class LoomSettings(BaseSettings):
    """Runtime settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOOM_",
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Logging level")

    # Asset loading
    fetch_assets: bool = Field(
        default=False,
        description="Fetch script assets over HTTP instead of deferring them to the browser",
    )
    asset_timeout: float = Field(default=10.0, gt=0, description="Per-asset fetch timeout (seconds)")
    compute_integrity: bool = Field(
        default=True,
        description="Add sha384 integrity attributes to scripts that were fetched",
    )
    cdn_overrides_path: str | None = Field(default=None, description="YAML file with CDN bundle overrides")

    # Markup contract
    content_selector: str = ".gh-content, .essay-content, .post-content, article"
    options_attribute: str = "data-options"
    update_attribute: str = "data-update"
    step_event: str = "story:step"
    auto_id_prefix: str = "loom-viz"

    # Adapter configuration
    mapbox_token: str | None = Field(default=None, description="Fallback Mapbox access token")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("options_attribute", "update_attribute")
    @classmethod
    def require_data_attribute(cls, v: str) -> str:
        if not v.startswith("data-"):
            raise ValueError(f"Attribute must be a data-* attribute: {v}")
        return v


@lru_cache()
def get_settings() -> LoomSettings:
    """Get cached settings instance."""
    return LoomSettings()
