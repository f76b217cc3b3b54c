"""Exec bridge interface shared by the Docker SDK and host-CLI backends."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.command import CommandResult, RenderedCommand
from ..models.records import ContainerStatus


class ExecBridge(ABC):
    """Runs rendered commands inside the persistent CLI container.

    Implementations block until the command finishes or the timeout expires,
    and serialize concurrent calls made through the same instance.

    A timeout stops waiting but does not stop the process inside the
    container, since docker has no call that kills an exec. The SDK backend
    refuses further commands while a timed-out exec still runs. The shell
    backend only kills the host ``docker`` client, so a timed-out command
    may keep writing detee-cli state after the lock is released.
    """

    container_name: str

    @abstractmethod
    def execute(self, command: RenderedCommand, timeout: Optional[float] = None) -> CommandResult:
        """Run a command in the container and capture its output.

        Raises:
            ContainerNotReadyError: the container is missing or stopped
            CommandTimeoutError: the timeout expired (partial output attached)
            CommandFailedError: the command could not be started
        """

    @abstractmethod
    def is_running(self) -> bool:
        """Check whether the CLI container exists and is running."""

    @abstractmethod
    def ensure_container(self, command: RenderedCommand) -> ContainerStatus:
        """Create or start the CLI container described by ``command``."""
