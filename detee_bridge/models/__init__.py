"""Data models for the action bridge."""

from .action import ActionRequest, ActionResponse, BridgeState
from .command import CommandResult, RenderedCommand, VolumeMount
from .errors import (
    BridgeError,
    CommandFailedError,
    CommandTimeoutError,
    ContainerNotReadyError,
    ErrorBody,
    ErrorKind,
    InvalidParameterError,
    NotConfiguredError,
    NotFoundError,
    ParseError,
    UnknownActionError,
)
from .records import Account, ContainerStatus, InstallInfo, Worker, WorkerUpdate

__all__ = [
    # Action models
    "ActionRequest",
    "ActionResponse",
    "BridgeState",
    # Command models
    "CommandResult",
    "RenderedCommand",
    "VolumeMount",
    # Domain records
    "Account",
    "ContainerStatus",
    "InstallInfo",
    "Worker",
    "WorkerUpdate",
    # Error models
    "ErrorKind",
    "ErrorBody",
    "BridgeError",
    "UnknownActionError",
    "InvalidParameterError",
    "NotConfiguredError",
    "ContainerNotReadyError",
    "CommandTimeoutError",
    "CommandFailedError",
    "ParseError",
    "NotFoundError",
]
