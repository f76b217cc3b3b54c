"""Command execution through the host ``docker`` binary and host shell."""

import subprocess
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

import structlog

from ...config import DockerConfig
from ...models.command import CommandResult, RenderedCommand
from ...models.errors import CommandFailedError, CommandTimeoutError, ContainerNotReadyError
from ...models.records import ContainerStatus
from ..interfaces import ExecBridge
from ..shell.dialect import ShellDialect

logger = structlog.get_logger(__name__)

# Daemon replies that mean the container itself is unusable
_NOT_READY_MARKERS = ("no such container", "is not running", "is paused", "is restarting")


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class DockerCliExecutor(ExecBridge):
    """Runs rendered host command lines with ``subprocess`` through a dialect."""

    def __init__(self, config: DockerConfig, dialect: ShellDialect):
        self._config = config
        self.dialect = dialect
        self.container_name = config.container_name
        self._lock = threading.Lock()

    def _run(self, command_line: str, timeout: float) -> Tuple[int, str, str]:
        """Run one host command line. Raises CommandTimeoutError on expiry."""
        try:
            completed = subprocess.run(
                self.dialect.invocation(command_line),
                capture_output=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(timeout, stdout=_decode(e.stdout), stderr=_decode(e.stderr)) from e
        except OSError as e:
            raise CommandFailedError(f"Could not start host shell: {e}") from e
        return completed.returncode, _decode(completed.stdout), _decode(completed.stderr)

    def _inspect(self) -> Tuple[Optional[str], str]:
        """Return (container id, status) or (None, "missing")."""
        line = " ".join(
            [
                "docker",
                "inspect",
                "--format",
                self.dialect.quote("{{.Id}} {{.State.Status}}"),
                self.dialect.quote(self.container_name),
            ]
        )
        exit_code, stdout, _ = self._run(line, self._config.timeout)
        parts = stdout.split()
        if exit_code != 0 or len(parts) != 2:
            return None, "missing"
        return parts[0], parts[1]

    def is_running(self) -> bool:
        try:
            _, status = self._inspect()
        except (CommandFailedError, CommandTimeoutError) as e:
            logger.warning("Container probe failed", container=self.container_name, error=e.message)
            return False
        return status == "running"

    def ensure_container(self, command: RenderedCommand) -> ContainerStatus:
        with self._lock:
            container_id, status = self._inspect()
            name = self.container_name
            if container_id is not None:
                if status != "running":
                    logger.info("Starting existing container", container=name, status=status)
                    exit_code, _, stderr = self._run(
                        f"docker start {self.dialect.quote(name)}", self._config.timeout
                    )
                    if exit_code != 0:
                        raise ContainerNotReadyError(
                            name, status=status, message=f"docker start failed: {stderr.strip()}"
                        )
                    status = "running"
                return ContainerStatus(container_id=container_id, name=name, status=status, created=False)

            for mount in command.mounts:
                try:
                    Path(mount.host_abs).mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise ContainerNotReadyError(
                        name, status="error", message=f"Failed to create volume directory: {e}"
                    ) from e

            # Image pulls can take much longer than engine calls
            exit_code, stdout, stderr = self._run(command.host_command, self._config.command_timeout)
            lines = stdout.strip().splitlines()
            if exit_code != 0 or not lines:
                raise ContainerNotReadyError(
                    name, status="error", message=f"docker run failed: {stderr.strip() or stdout.strip()}"
                )
            logger.info("Created container", container=name)
            return ContainerStatus(container_id=lines[-1].strip(), name=name, status="running", created=True)

    def execute(self, command: RenderedCommand, timeout: Optional[float] = None) -> CommandResult:
        if not command.in_container:
            raise ValueError(f"Command for '{command.action}' does not run inside the container")
        if timeout is None:
            timeout = self._config.command_timeout

        with self._lock:
            start = time.monotonic()
            exit_code, stdout, stderr = self._run(command.host_command, timeout)

        lowered = stderr.lower()
        if exit_code != 0 and "error response from daemon" in lowered:
            if any(marker in lowered for marker in _NOT_READY_MARKERS):
                status = "missing" if "no such container" in lowered else "stopped"
                raise ContainerNotReadyError(self.container_name, status=status)

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.debug(
            "Command finished", action=command.action, exit_code=exit_code, duration_ms=duration_ms
        )
        return CommandResult(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            metadata={"backend": "shell"},
        )
