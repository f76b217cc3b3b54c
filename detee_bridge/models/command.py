"""Rendered commands and their execution results.

These dataclasses travel between the renderer, the exec bridges and the
output parser. They never reach the caller.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class VolumeMount:
    """Bind mount from a host directory into the CLI container."""

    host_path: str  # As written for the host shell: "~/..." or "%USERPROFILE%\..."
    host_abs: str  # Expanded absolute path for the Docker Engine API
    container_path: str
    mode: str = "rw"


@dataclass(frozen=True)
class RenderedCommand:
    """A fully escaped command ready for one of the exec bridges.

    ``script`` is the POSIX command line run by ``sh -c`` inside the
    container. ``host_command`` is the equivalent line for the host shell
    dialect, used when commands go through the host ``docker`` binary.
    """

    action: str
    host_command: str
    script: str = ""
    in_container: bool = True
    mounts: Tuple[VolumeMount, ...] = ()


@dataclass
class CommandResult:
    """Captured output of one command execution."""

    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int = 0
    metadata: Optional[Dict[str, Any]] = field(default=None)

    @property
    def success(self) -> bool:
        """Return True if the command exited with status zero."""
        return self.exit_code == 0
