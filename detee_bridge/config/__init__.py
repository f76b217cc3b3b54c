"""Configuration management for the action bridge.

This module provides a Settings class with flat fields loaded from the
environment (or a ``.env`` file) and grouped views over them.

Usage:
    from detee_bridge.config import Settings, settings

    # Grouped access
    settings.docker.container_name
    settings.logging.level

    # Flat access
    settings.container_name
    settings.command_timeout
"""

import re
import sys
from typing import Dict, List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .actions import (
    ACTIONS,
    PROVIDER_NAME,
    PROVIDER_TYPE,
    ActionDefinition,
    ParamDefinition,
    get_action,
    get_action_names,
    is_known_action,
)
from .docker import DockerConfig
from .labels import ACCOUNT_LABELS, UPDATE_LABELS, WORKER_LABELS, Label
from .logging import LoggingConfig

_SAFE_PATH = re.compile(r"^[A-Za-z0-9._/-]+$")


class WorkerDefaults(BaseSettings):
    """Values substituted when create_worker omits a hardware parameter."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore", populate_by_name=True)

    distro: str = Field(default="ubuntu", alias="default_distro")
    vcpus: int = Field(default=2, ge=1, alias="default_vcpus")
    memory_mb: int = Field(default=2048, ge=1, alias="default_memory_mb")
    disk_gb: int = Field(default=20, ge=1, alias="default_disk_gb")
    hours: int = Field(default=4, ge=1, alias="default_hours")


class Settings(BaseSettings):
    """Bridge settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Container hosting the CLI
    container_name: str = Field(default="detee-cli", min_length=1)
    container_image: str = Field(default="detee/detee-cli:latest")
    container_entrypoint: str = Field(default="/usr/bin/fish")
    container_pull_always: bool = Field(default=True)
    cli_binary: str = Field(default="detee-cli")

    # Host volumes, relative to the home directory, mapped into the container
    volume_root: str = Field(default=".detee/container_volume")
    container_volumes: Dict[str, str] = Field(
        default_factory=lambda: {"cli": "/root/.detee/cli", ".ssh": "/root/.ssh"},
        description="Sub-directory of volume_root -> container path",
    )

    # Execution
    host_platform: Literal["auto", "unix", "windows"] = Field(default="auto")
    exec_backend: Literal["sdk", "shell"] = Field(
        default="sdk",
        description="sdk = Docker Engine API, shell = host docker binary via the host shell",
    )
    docker_base_url: str | None = Field(default=None)
    docker_timeout: int = Field(default=60, ge=5)
    command_timeout: int = Field(default=120, ge=1, le=3600)

    # Worker defaults
    default_distro: str = Field(default="ubuntu", min_length=1)
    default_vcpus: int = Field(default=2, ge=1)
    default_memory_mb: int = Field(default=2048, ge=1)
    default_disk_gb: int = Field(default=20, ge=1)
    default_hours: int = Field(default=4, ge=1)

    # Output parsing
    parser_extra_labels: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Extra 'Label:' texts per field, to follow CLI wording changes",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    log_file: str | None = Field(default=None)
    log_max_size_mb: int = Field(default=100, ge=1)
    log_backup_count: int = Field(default=5, ge=1)

    @field_validator("volume_root")
    @classmethod
    def validate_volume_root(cls, v: str) -> str:
        if not _SAFE_PATH.match(v) or v.startswith("/") or ".." in v.split("/"):
            raise ValueError("volume_root must be a relative path of [A-Za-z0-9._/-]")
        return v.strip("/")

    @field_validator("container_volumes")
    @classmethod
    def validate_container_volumes(cls, v: Dict[str, str]) -> Dict[str, str]:
        for host_dir, container_path in v.items():
            if not _SAFE_PATH.match(host_dir) or ".." in host_dir.split("/"):
                raise ValueError(f"Invalid volume directory: {host_dir}")
            if not container_path.startswith("/") or not _SAFE_PATH.match(container_path):
                raise ValueError(f"Invalid container path: {container_path}")
        return v

    @field_validator("container_name")
    @classmethod
    def validate_container_name(cls, v: str) -> str:
        if not re.match(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$", v):
            raise ValueError("container_name must match [A-Za-z0-9][A-Za-z0-9_.-]*")
        return v

    @field_validator("parser_extra_labels")
    @classmethod
    def validate_extra_labels(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        known = set(ACCOUNT_LABELS) | set(WORKER_LABELS) | set(UPDATE_LABELS)
        unknown = sorted(set(v) - known)
        if unknown:
            raise ValueError(f"Unknown fields in parser_extra_labels: {', '.join(unknown)}")
        return v

    # ========================================================================
    # GROUPED CONFIG ACCESS
    # ========================================================================

    @property
    def docker(self) -> DockerConfig:
        """Access Docker configuration group."""
        return DockerConfig(
            docker_base_url=self.docker_base_url,
            docker_timeout=self.docker_timeout,
            container_name=self.container_name,
            container_image=self.container_image,
            container_entrypoint=self.container_entrypoint,
            container_pull_always=self.container_pull_always,
            exec_backend=self.exec_backend,
            command_timeout=self.command_timeout,
            volume_root=self.volume_root,
            volumes=self.container_volumes,
        )

    @property
    def logging(self) -> LoggingConfig:
        """Access logging configuration group."""
        return LoggingConfig(
            log_level=self.log_level,
            log_format=self.log_format,
            log_file=self.log_file,
            log_max_size_mb=self.log_max_size_mb,
            log_backup_count=self.log_backup_count,
        )

    @property
    def worker_defaults(self) -> WorkerDefaults:
        """Access create_worker defaults."""
        return WorkerDefaults(
            default_distro=self.default_distro,
            default_vcpus=self.default_vcpus,
            default_memory_mb=self.default_memory_mb,
            default_disk_gb=self.default_disk_gb,
            default_hours=self.default_hours,
        )

    # ========================================================================
    # HELPER METHODS
    # ========================================================================

    def resolve_platform(self) -> str:
        """Resolve ``host_platform`` to "unix" or "windows"."""
        if self.host_platform != "auto":
            return self.host_platform
        return "windows" if sys.platform == "win32" else "unix"


# Default settings instance for the CLI entry point
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    # Grouped configs
    "DockerConfig",
    "LoggingConfig",
    "WorkerDefaults",
    # Action catalogue
    "ACTIONS",
    "PROVIDER_NAME",
    "PROVIDER_TYPE",
    "ActionDefinition",
    "ParamDefinition",
    "get_action",
    "get_action_names",
    "is_known_action",
    # Labels
    "Label",
]
