"""Container exec bridges.

This package provides the two ways of reaching the CLI container:
- client.py: Docker client factory and initialization
- manager.py: Container lifecycle management
- executor.py: Command execution through the Docker Engine API
- cli_executor.py: Command execution through the host docker binary
"""

from .cli_executor import DockerCliExecutor
from .client import DockerClientFactory
from .executor import ContainerExecutor
from .manager import ContainerManager

__all__ = ["ContainerManager", "DockerClientFactory", "ContainerExecutor", "DockerCliExecutor"]
