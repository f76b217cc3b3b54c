"""Action bridge for DeeTEE workers driven through a containerized detee-cli."""

from ._version import __version__

__all__ = ["__version__"]
