"""
Application Configuration.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_APP_NAME = "Default App"


class AppSettings(BaseSettings):
    """Basic application metadata used to name per-user directories."""

    model_config = SettingsConfigDict(
        env_prefix="APPLOG_APP_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    name: str = Field(default=DEFAULT_APP_NAME, description="Application name used in directory paths")

    @field_validator("name")
    @classmethod
    def _blank_name_falls_back(cls, value: str) -> str:
        value = value.strip()
        return value or DEFAULT_APP_NAME
