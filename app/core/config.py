"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_mail_settings() -> "MailSettings":
    """Build mail transport settings from environment."""

    return MailSettings()


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


class MailSettings(BaseSettings):
    """Outgoing mail transport configuration.

    ``console`` logs messages instead of delivering them and is the default
    for local development. ``smtp`` delivers through an SMTP relay.
    """

    provider: str = Field(
        "console",
        description="Mail transport provider (console, smtp)",
    )
    from_address: str = Field(
        "no-reply@localhost",
        description="Envelope sender and From header for outgoing mail",
    )
    smtp_host: str = Field(
        "localhost",
        description="SMTP relay host",
    )
    smtp_port: int = Field(
        587,
        description="SMTP relay port",
        ge=1,
    )
    smtp_user: str | None = Field(
        None,
        description="SMTP username (optional)",
    )
    smtp_password: str | None = Field(
        None,
        description="SMTP password (optional)",
    )
    smtp_start_tls: bool = Field(
        True,
        description="Upgrade the SMTP connection with STARTTLS",
    )
    timeout_seconds: float = Field(
        30.0,
        description="SMTP connection/command timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="MAIL_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(
        "INFO",
        description="Root log level",
    )
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where log lines are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate request correlation ids",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description=(
            "Comma-separated API key entries in the form "
            "key:user_id[:organization_id[:perm1|perm2]]"
        ),
    )
    anonymous_user_id: str = Field(
        "anonymous",
        description="User identity attached to requests when auth is disabled",
    )

    email_rate_limit_quota: int = Field(
        2,
        description="Maximum emails a single user may send per window",
        ge=1,
    )
    email_rate_limit_window_seconds: float = Field(
        60.0,
        description="Email rate limit window size in seconds",
        gt=0,
    )
    email_rate_limit_reap_interval_seconds: float = Field(
        300.0,
        description="How often idle rate limit windows are purged (0 disables)",
        ge=0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    dispatch_send_pause_seconds: float = Field(
        30.0,
        description="Fixed pause between campaign sends regardless of outcome",
        ge=0,
    )
    dispatch_throttle_policy: Literal["count", "retry"] = Field(
        "count",
        description=(
            "What happens to a throttled recipient: 'count' records it as "
            "failed and moves on after the pause, 'retry' sends it again after the pause"
        ),
    )
    dispatch_max_throttle_retries: int = Field(
        3,
        description="Retries per recipient under the 'retry' throttle policy",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    mail: MailSettings = Field(default_factory=_build_mail_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
