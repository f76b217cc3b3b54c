"""Domain records parsed from detee-cli output."""

from typing import Optional

from pydantic import BaseModel, Field


class InstallInfo(BaseModel):
    """Result of probing the CLI inside the container."""

    version: str


class ContainerStatus(BaseModel):
    """State of the container hosting the CLI."""

    container_id: str
    name: str
    status: str = "running"
    created: bool = Field(default=False, description="True when this call created it")


class Account(BaseModel):
    """Operator identity registered with the brain."""

    config_path: str
    brain_url: str
    ssh_key_path: Optional[str] = None
    wallet_public_key: Optional[str] = None
    account_balance: Optional[str] = None
    wallet_secret_key_path: Optional[str] = None


class Worker(BaseModel):
    """A virtual machine managed through detee-cli.

    ``uuid`` is assigned by the deploy command and is the only key used for
    lookups, updates and deletes.
    """

    model_config = {"frozen": True}

    uuid: str = Field(..., min_length=1)
    hostname: Optional[str] = None
    distro: Optional[str] = None
    vcpus: Optional[int] = None
    memory_mb: Optional[int] = None
    disk_gb: Optional[int] = None
    hours: Optional[int] = None
    price: Optional[str] = None
    total_units: Optional[int] = None
    locked_lp: Optional[float] = None
    lp_per_hour: Optional[float] = None
    ssh_host: Optional[str] = None
    ssh_port: Optional[int] = None
    city: Optional[str] = None
    time_left: Optional[str] = None
    status: Optional[str] = None


class WorkerUpdate(BaseModel):
    """Outcome of an update command."""

    uuid: str
    hardware_modified: bool = False
    hours_updated: Optional[int] = None
