# src/playwright_server/config/settings.py
"""
Environment-Aware Configuration Management with Pydantic v2

This module provides configuration management for the session server:
- Loads settings from multiple sources (defaults → .env → environment variables)
- Validates all configuration with Pydantic v2
- Keeps session limits, TTL bounds and recording retention in one place
- Supports different environments (development, testing, staging, production)

Proxy settings are not part of this model: the global proxy
is read from the conventional HTTP_PROXY / NO_PROXY variables by
``playwright_server.core.proxy.load_global_proxy`` at startup.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    model_validator,
    ConfigDict
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environments with specific behaviors."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class BrowserSettings(BaseModel):
    """
    Browser configuration settings with validation.

    These settings control how every isolated session context is launched.
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    channel: Optional[str] = Field(
        default="chrome",
        description="Chromium distribution channel (chrome, msedge, ...) or None for bundled chromium"
    )

    # Sessions run headed under a virtual display by default
    headless: bool = Field(
        default=False,
        description="Run browser contexts in headless mode"
    )

    viewport_width: int = Field(
        default=1920,
        ge=320,
        le=3840,
        description="Browser viewport width (320-3840)"
    )

    viewport_height: int = Field(
        default=1080,
        ge=240,
        le=2160,
        description="Browser viewport height (240-2160)"
    )

    ignore_https_errors: bool = Field(
        default=True,
        description="Ignore TLS certificate errors in session contexts"
    )

    timeout: int = Field(
        default=30000,
        ge=1000,
        le=300000,
        description="Default Playwright action timeout in milliseconds"
    )

    args: List[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-dev-shm-usage",
        ],
        description="Browser command line arguments"
    )

    @field_validator("args", mode="before")
    @classmethod
    def parse_args(cls, v) -> List[str]:
        """Parse browser arguments from string or list."""
        if isinstance(v, str):
            return [arg.strip() for arg in v.split(",") if arg.strip()]
        return v or []


class SessionSettings(BaseModel):
    """Session registry limits and storage."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    max_concurrent: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Maximum number of live sessions"
    )

    min_ttl_ms: int = Field(
        default=60_000,
        ge=1000,
        description="Smallest TTL a client may request (1 minute)"
    )

    max_ttl_ms: int = Field(
        default=14_400_000,
        ge=1000,
        description="Largest TTL a client may request (4 hours)"
    )

    user_data_dir: Path = Field(
        default=Path("./user-data"),
        description="Parent directory of per-session browser profiles"
    )

    @model_validator(mode="after")
    def validate_ttl_bounds(self) -> "SessionSettings":
        """Ensure the TTL range is not empty."""
        if self.min_ttl_ms > self.max_ttl_ms:
            raise ValueError("min_ttl_ms cannot exceed max_ttl_ms")
        return self


class RecordingSettings(BaseModel):
    """Video recording storage and retention."""
    model_config = ConfigDict(extra="forbid")

    directory: Path = Field(default=Path("./recordings"))

    retention_seconds: int = Field(
        default=3600,
        ge=1,
        description="How long a finished recording stays available"
    )

    sweep_interval_seconds: int = Field(
        default=900,
        ge=1,
        description="How often expired recordings are reaped"
    )

    video_width: int = Field(default=1280, ge=160, le=3840)
    video_height: int = Field(default=720, ge=120, le=2160)


class LoggingSettings(BaseModel):
    """Centralized logging configuration."""
    model_config = ConfigDict(extra="forbid")

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    format_type: str = Field(
        default="json",
        description="Log format (json, console)"
    )

    console_enabled: bool = Field(default=True)
    file_enabled: bool = Field(default=False)
    file_path: Path = Field(default=Path("logs/playwright-server.log"))

    max_file_size_mb: int = Field(default=100, ge=1, le=1000)
    backup_count: int = Field(default=5, ge=1, le=30)

    correlation_id_enabled: bool = Field(default=True)

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v_upper

    @field_validator("format_type")
    @classmethod
    def validate_format_type(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = {"json", "console"}
        if v not in valid_formats:
            raise ValueError(f"Invalid format: {v}")
        return v


class Settings(BaseSettings):
    """
    Main application settings with environment-aware loading.

    This class loads configuration from multiple sources in priority order:
    1. Environment variables (highest priority)
    2. .env.local file
    3. .env file
    4. Default values (lowest priority)

    Nested sections use ``__`` as delimiter, e.g.
    ``SESSIONS__MAX_CONCURRENT=20`` or ``RECORDING__DIRECTORY=/data/rec``.
    """

    model_config = SettingsConfigDict(
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    environment: Environment = Field(
        default=Environment.PRODUCTION,
        validation_alias="ENVIRONMENT",
        description="Application environment"
    )

    debug: bool = Field(
        default=False,
        validation_alias="DEBUG",
        description="Enable debug mode"
    )

    app_name: str = Field(
        default="playwright-server",
        validation_alias="APP_NAME"
    )

    app_version: str = Field(default="1.0.0")

    host: str = Field(default="0.0.0.0", validation_alias="HOST")

    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias="PORT"
    )

    public_base_url: Optional[str] = Field(
        default=None,
        validation_alias="PUBLIC_BASE_URL",
        description="Base URL clients use to reach this server"
    )

    browser: BrowserSettings = Field(
        default_factory=BrowserSettings,
        description="Browser configuration"
    )

    sessions: SessionSettings = Field(
        default_factory=SessionSettings,
        description="Session registry configuration"
    )

    recording: RecordingSettings = Field(
        default_factory=RecordingSettings,
        description="Recording configuration"
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration"
    )

    @field_validator("public_base_url")
    @classmethod
    def validate_public_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate the public base URL."""
        if v is None:
            return v
        result = urlparse(v)
        if not all([result.scheme, result.netloc]):
            raise ValueError(f"Invalid public_base_url: {v}")
        return v.rstrip("/")

    @model_validator(mode="after")
    def configure_environment_defaults(self) -> "Settings":
        """Apply environment-specific configuration adjustments."""

        if self.public_base_url is None:
            self.public_base_url = f"http://localhost:{self.port}"

        if self.environment == Environment.PRODUCTION:
            self.debug = False
            self.logging.format_type = "json"

        elif self.environment == Environment.DEVELOPMENT:
            self.logging.format_type = "console"
            if self.debug:
                self.logging.level = "DEBUG"

        elif self.environment == Environment.TESTING:
            self.browser.headless = True
            self.logging.file_enabled = False

        return self

    def playback_url(self, session_id: str) -> str:
        """Public URL of a session's finalized recording."""
        return f"{self.public_base_url}/recordings/{session_id}/video.webm"

    def model_dump_safe(self) -> Dict[str, Any]:
        """Dump configuration with paths stringified, suitable for logging."""
        return self.model_dump(mode="json")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    The cache can be cleared using get_settings.cache_clear()

    Returns:
        Settings: Application settings instance
    """
    return Settings()


def reload_settings() -> Settings:
    """Force reload settings by clearing cache."""
    get_settings.cache_clear()
    return get_settings()


def get_testing_settings(**overrides: Any) -> Settings:
    """Get settings tuned for automated tests."""
    values: Dict[str, Any] = {
        "environment": Environment.TESTING,
        "debug": False,
    }
    values.update(overrides)
    return Settings(**values)
