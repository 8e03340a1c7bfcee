"""
Logging Configuration.

Severity thresholds are fixed (file >= INFO, console >= WARNING) and are not
part of these settings.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """File sink rotation and formatting configuration."""

    model_config = SettingsConfigDict(
        env_prefix="APPLOG_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    directory: Optional[str] = Field(
        default=None,
        description="Log directory override; the platform logs directory is used when unset",
    )
    # Defaults mirror applog.logging.rotation and applog.logging.formatters
    file_prefix: str = Field(default="app", min_length=1, description="Log file name prefix")
    max_bytes: int = Field(default=10 * 1024 * 1024, gt=0, description="Maximum bytes per log file")
    max_files: int = Field(default=5, gt=0, description="Maximum log files kept per day")
    frame_limit: int = Field(default=10, ge=0, description="Stack lines written per exception before truncation")
