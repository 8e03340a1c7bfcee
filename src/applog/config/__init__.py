"""
applog Configuration Module.

Implements the Nested Settings Pattern: each sub-module is an independent
concern with its own environment variable prefix.

Usage:
    from applog.config import settings

    settings.app.name              # "Default App"
    settings.logging.max_bytes     # 10485760
"""

from functools import cached_property

from pydantic_settings import BaseSettings, SettingsConfigDict

from .app import AppSettings
from .logging import LoggingSettings


class Settings(BaseSettings):
    """Composite settings aggregating the application and logging domains."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @cached_property
    def app(self) -> AppSettings:
        return AppSettings()

    @cached_property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()

    @property
    def app_name(self) -> str:
        return self.app.name


# Singleton instance
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    "AppSettings",
    "LoggingSettings",
]
