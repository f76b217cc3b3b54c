"""CLI container lifecycle management."""

from pathlib import Path
from typing import Iterable, Optional

import structlog
from docker.errors import DockerException, NotFound
from docker.models.containers import Container
from requests.exceptions import RequestException

from ...config import DockerConfig
from ...models.command import VolumeMount
from ...models.errors import ContainerNotReadyError
from ...models.records import ContainerStatus
from .client import DockerClientFactory

logger = structlog.get_logger(__name__)


class ContainerManager:
    """Manages the single long-lived container that hosts detee-cli."""

    def __init__(self, config: DockerConfig, client_factory: Optional[DockerClientFactory] = None):
        """Initialize the container manager."""
        self._config = config
        self._client_factory = client_factory or DockerClientFactory(config)

    @property
    def client(self):
        """Get the Docker client."""
        return self._client_factory.get_client()

    @property
    def container_name(self) -> str:
        return self._config.container_name

    def is_available(self) -> bool:
        """Check if Docker is available."""
        return self._client_factory.is_available()

    def get_initialization_error(self) -> Optional[str]:
        """Get Docker initialization error if any."""
        return self._client_factory.get_initialization_error()

    def _require_client(self):
        client = self.client
        if client is None:
            raise ContainerNotReadyError(
                self.container_name,
                status="docker unavailable",
                message=f"Docker not available: {self.get_initialization_error()}",
            )
        return client

    def get_container(self) -> Optional[Container]:
        """Look up the CLI container by name. Returns None when it does not exist.

        Raises:
            ContainerNotReadyError: Docker is unavailable or stopped answering
        """
        client = self._require_client()
        try:
            return client.containers.get(self.container_name)
        except NotFound:
            return None
        except (DockerException, RequestException) as e:
            logger.warning("Failed to inspect container", container=self.container_name, error=str(e))
            raise ContainerNotReadyError(
                self.container_name,
                status="docker unavailable",
                message=f"Docker did not answer: {e}",
            ) from e

    def container_state(self) -> str:
        """Return the container status ("running", "exited", ...) or "missing"."""
        try:
            container = self.get_container()
        except ContainerNotReadyError:
            return "missing"
        if container is None:
            return "missing"
        return container.status

    def ensure_container(self, mounts: Iterable[VolumeMount] = ()) -> ContainerStatus:
        """Reuse, start or create the CLI container.

        A running container is reused as-is and a stopped one is started. A
        missing one is created detached with a TTY, after creating the host
        side of every volume mount.
        """
        client = self._require_client()
        name = self.container_name
        try:
            container = self.get_container()
            if container is not None:
                if container.status != "running":
                    logger.info("Starting existing container", container=name, status=container.status)
                    container.start()
                    container.reload()
                return ContainerStatus(
                    container_id=container.id, name=name, status=container.status, created=False
                )

            if self._config.pull_always:
                logger.info("Pulling image", image=self._config.image)
                client.images.pull(self._config.image)

            volumes = {}
            for mount in mounts:
                Path(mount.host_abs).mkdir(parents=True, exist_ok=True)
                volumes[mount.host_abs] = {"bind": mount.container_path, "mode": mount.mode}

            container = client.containers.run(
                self._config.image,
                name=name,
                detach=True,
                tty=True,
                entrypoint=self._config.entrypoint,
                volumes=volumes,
            )
            container.reload()
            logger.info("Created container", container=name, container_id=container.id[:12])
            return ContainerStatus(
                container_id=container.id, name=name, status=container.status, created=True
            )
        except (DockerException, RequestException) as e:
            logger.error("Failed to set up container", container=name, error=str(e))
            raise ContainerNotReadyError(
                name, status="error", message=f"Failed to set up container '{name}': {e}"
            ) from e
        except OSError as e:
            raise ContainerNotReadyError(
                name, status="error", message=f"Failed to create volume directory: {e}"
            ) from e
