"""Host shell dialects and the command renderer."""

from .dialect import DIALECTS, ShellDialect, UnixDialect, WindowsDialect, get_dialect
from .renderer import CommandRenderer

__all__ = [
    "DIALECTS",
    "ShellDialect",
    "UnixDialect",
    "WindowsDialect",
    "get_dialect",
    "CommandRenderer",
]
