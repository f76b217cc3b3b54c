"""Docker and CLI-container configuration."""

from typing import Dict, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DockerConfig(BaseSettings):
    """Settings for the container hosting detee-cli."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore", populate_by_name=True)

    base_url: str | None = Field(default=None, alias="docker_base_url")
    timeout: int = Field(default=60, ge=5, alias="docker_timeout")
    container_name: str = Field(default="detee-cli")
    image: str = Field(default="detee/detee-cli:latest", alias="container_image")
    entrypoint: str = Field(default="/usr/bin/fish", alias="container_entrypoint")
    pull_always: bool = Field(default=True, alias="container_pull_always")
    exec_backend: Literal["sdk", "shell"] = Field(default="sdk")
    command_timeout: int = Field(default=120, ge=1, le=3600)

    # Host directory (relative to the home directory) -> container path
    volume_root: str = Field(default=".detee/container_volume")
    volumes: Dict[str, str] = Field(
        default_factory=lambda: {"cli": "/root/.detee/cli", ".ssh": "/root/.ssh"}
    )
