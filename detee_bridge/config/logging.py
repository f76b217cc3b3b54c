"""Logging configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore", populate_by_name=True)

    level: str = Field(default="INFO", alias="log_level")
    format: str = Field(default="json", alias="log_format")
    file: str | None = Field(default=None, alias="log_file")
    max_size_mb: int = Field(default=100, ge=1, alias="log_max_size_mb")
    backup_count: int = Field(default=5, ge=1, alias="log_backup_count")
