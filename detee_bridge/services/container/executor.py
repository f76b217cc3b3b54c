"""Command execution in the CLI container through the Docker Engine API."""

import socket
import struct
import threading
import time
from typing import List, Optional, Tuple

import structlog
from docker.errors import DockerException, NotFound

from ...config import DockerConfig
from ...models.command import CommandResult, RenderedCommand
from ...models.errors import CommandFailedError, CommandTimeoutError, ContainerNotReadyError
from ...models.records import ContainerStatus
from ..interfaces import ExecBridge
from .manager import ContainerManager

logger = structlog.get_logger(__name__)

# Multiplexed attach stream: 1 byte stream id, 3 bytes padding, 4 bytes size
_FRAME_HEADER = struct.Struct(">BxxxL")
_STDOUT, _STDERR = 1, 2

MAX_OUTPUT_SIZE = 1024 * 1024


def demux_stream(data: bytes) -> Tuple[bytes, bytes]:
    """Split a multiplexed exec stream into stdout and stderr bytes.

    A truncated last frame keeps whatever payload arrived. Data that does not
    start with a frame header (TTY mode) is returned as stdout.
    """
    stdout: List[bytes] = []
    stderr: List[bytes] = []
    offset = 0
    while offset < len(data):
        if len(data) - offset < _FRAME_HEADER.size or data[offset] not in (0, _STDOUT, _STDERR):
            stdout.append(data[offset:])
            break
        stream, size = _FRAME_HEADER.unpack_from(data, offset)
        offset += _FRAME_HEADER.size
        payload = data[offset : offset + size]
        offset += size
        (stderr if stream == _STDERR else stdout).append(payload)
    return b"".join(stdout), b"".join(stderr)


class ContainerExecutor(ExecBridge):
    """Runs rendered scripts with ``sh -c`` inside the CLI container."""

    EXIT_CODE_POLL_INTERVAL = 0.05
    EXIT_CODE_POLL_ATTEMPTS = 40

    def __init__(self, config: DockerConfig, manager: Optional[ContainerManager] = None):
        """Initialize executor for the configured container."""
        self._config = config
        self.manager = manager or ContainerManager(config)
        self.container_name = config.container_name
        self._lock = threading.Lock()
        # Exec left running by a timeout; docker cannot kill an exec
        self._pending_exec: Optional[str] = None

    def is_running(self) -> bool:
        return self.manager.container_state() == "running"

    def ensure_container(self, command: RenderedCommand) -> ContainerStatus:
        with self._lock:
            return self.manager.ensure_container(command.mounts)

    def execute(self, command: RenderedCommand, timeout: Optional[float] = None) -> CommandResult:
        """Execute a command in the container with a bounded timeout."""
        if not command.in_container:
            raise ValueError(f"Command for '{command.action}' does not run inside the container")
        if timeout is None:
            timeout = self._config.command_timeout

        with self._lock:
            state = self.manager.container_state()
            if state != "running":
                raise ContainerNotReadyError(self.container_name, status=state)

            client = self.manager.client
            start = time.monotonic()
            try:
                self._check_pending(client)
                exec_instance = client.api.exec_create(
                    self.container_name,
                    cmd=["sh", "-c", command.script],
                    stdout=True,
                    stderr=True,
                    stdin=False,
                    tty=False,
                )
                exec_id = exec_instance["Id"]
                raw, timed_out = self._read_stream(client, exec_id, timeout)
                stdout, stderr = (self._decode(part) for part in demux_stream(raw))
                if timed_out:
                    self._pending_exec = exec_id
                    logger.warning("Command timed out", action=command.action, timeout=timeout)
                    raise CommandTimeoutError(timeout, stdout=stdout, stderr=stderr)
                exit_code = self._wait_exit_code(client, exec_id)
            except DockerException as e:
                logger.error("Failed to execute command in container", action=command.action, error=str(e))
                raise CommandFailedError(f"Execution failed: {e}") from e
            except OSError as e:
                logger.error("Exec stream failed", action=command.action, error=str(e))
                raise CommandFailedError(f"Exec stream failed: {e}") from e

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.debug(
            "Command finished", action=command.action, exit_code=exit_code, duration_ms=duration_ms
        )
        return CommandResult(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            metadata={"exec_id": exec_id, "backend": "sdk"},
        )

    def _check_pending(self, client) -> None:
        """Refuse to start while an exec abandoned by a timeout still runs."""
        if self._pending_exec is None:
            return
        try:
            info = client.api.exec_inspect(self._pending_exec)
        except NotFound:
            info = {}
        if info.get("Running"):
            raise ContainerNotReadyError(
                self.container_name,
                status="busy",
                message=f"Timed-out command {self._pending_exec[:12]} is still running in '{self.container_name}'",
            )
        self._pending_exec = None

    def _read_stream(self, client, exec_id: str, timeout: float) -> Tuple[bytes, bool]:
        """Read the attach stream until EOF or the deadline. Returns (data, timed_out)."""
        sock = client.api.exec_start(exec_id, socket=True)
        raw_sock = getattr(sock, "_sock", sock)
        deadline = time.monotonic() + timeout
        chunks = []
        timed_out = False
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    timed_out = True
                    break
                raw_sock.settimeout(remaining)
                try:
                    chunk = raw_sock.recv(4096)
                except socket.timeout:
                    timed_out = True
                    break
                if not chunk:
                    break
                chunks.append(chunk)
        finally:
            sock.close()
        return b"".join(chunks), timed_out

    def _wait_exit_code(self, client, exec_id: str) -> int:
        """Inspect the exec until the daemon reports its exit code."""
        for _ in range(self.EXIT_CODE_POLL_ATTEMPTS):
            info = client.api.exec_inspect(exec_id)
            if info.get("ExitCode") is not None and not info.get("Running"):
                return info["ExitCode"]
            time.sleep(self.EXIT_CODE_POLL_INTERVAL)
        raise CommandFailedError(f"Exit code of exec {exec_id[:12]} was never reported")

    def _decode(self, output: bytes) -> str:
        text = output.decode("utf-8", errors="replace")
        if len(text) > MAX_OUTPUT_SIZE:
            text = text[:MAX_OUTPUT_SIZE] + "\n[Output truncated - size limit exceeded]"
        return text
