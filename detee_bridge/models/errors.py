"""Error models and exception classes for the action bridge."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Error kind enumeration."""

    UNKNOWN_ACTION = "UnknownAction"
    INVALID_PARAMETER = "InvalidParameter"
    NOT_CONFIGURED = "NotConfigured"
    CONTAINER_NOT_READY = "ContainerNotReady"
    COMMAND_TIMEOUT = "CommandTimeout"
    COMMAND_FAILED = "CommandFailed"
    PARSE_ERROR = "ParseError"
    NOT_FOUND = "NotFound"


class ErrorBody(BaseModel):
    """Structured error carried by a failed action response."""

    kind: ErrorKind = Field(..., description="Error category")
    message: str = Field(..., description="Human-readable error message")
    details: Dict[str, Any] = Field(
        default_factory=dict, description="Diagnostic data (raw output, exit code)"
    )

    model_config = {"use_enum_values": True}


# Custom Exception Classes


class BridgeError(Exception):
    """Base exception for the action bridge."""

    kind: ErrorKind = ErrorKind.COMMAND_FAILED

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_body(self) -> ErrorBody:
        """Convert exception to the structured error body."""
        return ErrorBody(kind=self.kind, message=self.message, details=self.details)


class UnknownActionError(BridgeError):
    """Action name outside the fixed catalogue."""

    kind = ErrorKind.UNKNOWN_ACTION

    def __init__(self, action: str, **kwargs):
        super().__init__(message=f"Unknown action: {action}", **kwargs)
        self.details.setdefault("action", action)


class InvalidParameterError(BridgeError):
    """Missing or malformed request parameter."""

    kind = ErrorKind.INVALID_PARAMETER

    def __init__(self, parameter: str, reason: str, **kwargs):
        super().__init__(message=f"Invalid parameter '{parameter}': {reason}", **kwargs)
        self.parameter = parameter
        self.details.setdefault("parameter", parameter)


class NotConfiguredError(BridgeError):
    """Action called before the bridge reached the state it needs."""

    kind = ErrorKind.NOT_CONFIGURED

    def __init__(self, action: str, state: str, required: str, **kwargs):
        super().__init__(
            message=f"Action '{action}' requires state '{required}', bridge is '{state}'",
            **kwargs,
        )
        self.details.update({"action": action, "state": state, "required": required})


class ContainerNotReadyError(BridgeError):
    """The CLI container is missing or not running."""

    kind = ErrorKind.CONTAINER_NOT_READY

    def __init__(self, container: str, status: str = "missing", message: str = None, **kwargs):
        super().__init__(
            message=message or f"Container '{container}' is not running (status: {status})",
            **kwargs,
        )
        self.details.update({"container": container, "status": status})


class CommandTimeoutError(BridgeError):
    """Command exceeded the execution timeout."""

    kind = ErrorKind.COMMAND_TIMEOUT

    def __init__(self, timeout: float, stdout: str = "", stderr: str = "", **kwargs):
        super().__init__(message=f"Command timed out after {timeout} seconds", **kwargs)
        self.stdout = stdout
        self.stderr = stderr
        self.details.update({"timeout": timeout, "stdout": stdout, "stderr": stderr})


class CommandFailedError(BridgeError):
    """Command exited non-zero or could not be started."""

    kind = ErrorKind.COMMAND_FAILED

    def __init__(self, output: str, exit_code: Optional[int] = None, stdout: str = "", stderr: str = "", **kwargs):
        if exit_code is None:
            message = f"Command failed: {output}"
        else:
            message = f"Command failed with exit code {exit_code}: {output}"
        super().__init__(message=message, **kwargs)
        self.output = output
        self.exit_code = exit_code
        self.details.update({"exit_code": exit_code, "stdout": stdout, "stderr": stderr})


class ParseError(BridgeError):
    """CLI output could not be turned into a domain record."""

    kind = ErrorKind.PARSE_ERROR

    def __init__(self, reason: str, raw: str, **kwargs):
        super().__init__(message=f"Could not parse CLI output: {reason}\n{raw}", **kwargs)
        self.raw = raw
        self.details.setdefault("raw", raw)


class NotFoundError(BridgeError):
    """Targeted lookup found nothing. Handled as a negative result."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str, resource_id: str = None, **kwargs):
        message = f"{resource} not found"
        if resource_id:
            message += f": {resource_id}"
        super().__init__(message=message, **kwargs)
        self.resource_id = resource_id
