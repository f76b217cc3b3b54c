"""Docker client factory and initialization."""

from typing import Optional

import docker
import structlog
from docker.errors import DockerException
from requests.exceptions import RequestException

from ...config import DockerConfig

logger = structlog.get_logger(__name__)


class DockerClientFactory:
    """Factory for creating Docker clients with proper initialization."""

    def __init__(self, config: DockerConfig):
        """Initialize the factory without contacting the daemon."""
        self._config = config
        self.client: Optional[docker.DockerClient] = None
        self._initialization_error: Optional[str] = None
        self._initialization_attempted: bool = False

    def _ensure_client(self) -> bool:
        """Ensure Docker client is initialized. Returns True if successful."""
        if self.client is not None:
            return True

        if self._initialization_attempted and self._initialization_error:
            return False

        self._initialization_attempted = True
        try:
            if self._config.base_url:
                logger.info("Connecting to Docker", base_url=self._config.base_url)
                client = docker.DockerClient(
                    base_url=self._config.base_url, timeout=self._config.timeout
                )
            else:
                logger.info("Connecting to Docker from environment")
                client = docker.from_env(timeout=self._config.timeout)
            client.ping()
        except (DockerException, RequestException) as e:
            logger.error("Failed to create Docker client", error=str(e))
            self._initialization_error = str(e)
            self.client = None
            return False

        self.client = client
        self._initialization_error = None
        logger.info("Docker client initialized")
        return True

    def is_available(self) -> bool:
        """Check if Docker is available."""
        return self._ensure_client()

    def get_initialization_error(self) -> Optional[str]:
        """Get Docker initialization error if any."""
        return self._initialization_error

    def reset_initialization(self) -> None:
        """Reset initialization state to allow retry."""
        self._initialization_attempted = False
        self._initialization_error = None
        self.close()
        self.client = None

    def get_client(self) -> Optional[docker.DockerClient]:
        """Get the Docker client, ensuring it's initialized."""
        if self._ensure_client():
            return self.client
        return None

    def close(self) -> None:
        """Close Docker client connection."""
        if self.client is None:
            return
        try:
            self.client.close()
        except DockerException as e:
            logger.error("Error closing Docker client", error=str(e))
