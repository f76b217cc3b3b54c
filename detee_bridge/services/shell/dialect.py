"""Host shell dialects.

The host shell is what runs ``docker`` when commands are driven through the
host binary, and it decides how volume paths and the home directory are
written. One dialect is selected at startup; nothing else in the pipeline
branches on the platform.
"""

import ntpath
import os
import posixpath
import re
import shlex
from abc import ABC, abstractmethod
from pathlib import Path
from typing import FrozenSet, List, Union

from ...models.errors import InvalidParameterError


class ShellDialect(ABC):
    """Quoting and invocation rules of one host shell."""

    name: str = ""

    # Characters this dialect cannot carry safely inside a quoted argument
    unsafe_chars: FrozenSet[str] = frozenset({"\x00"})

    def validate(self, parameter: str, value: str) -> str:
        """Reject a value that cannot be escaped for this dialect."""
        bad = sorted({ch for ch in value if ch in self.unsafe_chars})
        if bad:
            shown = ", ".join(repr(ch) for ch in bad)
            raise InvalidParameterError(
                parameter, f"contains characters that cannot be escaped for {self.name}: {shown}"
            )
        return value

    @abstractmethod
    def quote(self, value: str) -> str:
        """Quote one argument for the host shell."""

    @abstractmethod
    def home_path(self, relative: str) -> str:
        """Write a home-relative path the way the host shell expands it."""

    @abstractmethod
    def expand_home(self, relative: str) -> str:
        """Expand a home-relative path to an absolute host path."""

    @abstractmethod
    def volume_arg(self, relative: str, container_path: str, mode: str = "rw") -> str:
        """Render a ``--volume`` value for a home-relative host directory."""

    @abstractmethod
    def invocation(self, command: str) -> Union[List[str], str]:
        """Arguments for ``subprocess`` that run ``command`` through this shell."""


class UnixDialect(ShellDialect):
    """POSIX ``sh``."""

    name = "unix"
    unsafe_chars = frozenset({"\x00"})

    def quote(self, value: str) -> str:
        self.validate("argument", value)
        return shlex.quote(value)

    def home_path(self, relative: str) -> str:
        return "~/" + relative.replace("\\", "/").strip("/")

    def expand_home(self, relative: str) -> str:
        return posixpath.join(str(Path.home()), relative.replace("\\", "/").strip("/"))

    def volume_arg(self, relative: str, container_path: str, mode: str = "rw") -> str:
        # "~" only expands unquoted at the start of a word
        return f"{self.home_path(relative)}:{container_path}:{mode}"

    def invocation(self, command: str) -> List[str]:
        return ["/bin/sh", "-c", command]


class WindowsDialect(ShellDialect):
    """``cmd.exe`` launching programs that parse arguments with MSVCRT rules."""

    name = "windows"
    # Quotes nest POSIX-quoted scripts, % and ! trigger expansion even inside quotes
    unsafe_chars = frozenset({'"', "'", "%", "!", "\r", "\n", "\x00"})

    # Rendered scripts carry POSIX single quotes of their own
    _QUOTE_UNSAFE = unsafe_chars - {"'"}
    _BARE = re.compile(r"^[A-Za-z0-9_.:/\\@=+,-]+$")

    def quote(self, value: str) -> str:
        bad = sorted({ch for ch in value if ch in self._QUOTE_UNSAFE})
        if bad:
            raise InvalidParameterError("argument", f"cannot be quoted for cmd.exe: {bad!r}")
        if self._BARE.match(value):
            return value
        # A run of backslashes before the closing quote must be doubled
        trailing = len(value) - len(value.rstrip("\\"))
        return '"' + value + "\\" * trailing + '"'

    def home_path(self, relative: str) -> str:
        return "%USERPROFILE%\\" + relative.replace("/", "\\").strip("\\")

    def expand_home(self, relative: str) -> str:
        profile = os.environ.get("USERPROFILE") or str(Path.home())
        return ntpath.join(profile, relative.replace("/", "\\").strip("\\"))

    def volume_arg(self, relative: str, container_path: str, mode: str = "rw") -> str:
        # %USERPROFILE% may contain spaces; cmd expands variables inside quotes
        return f'"{self.home_path(relative)}:{container_path}:{mode}"'

    def invocation(self, command: str) -> str:
        # Passed to CreateProcess as-is; a list would be re-quoted by list2cmdline
        return f'cmd.exe /d /s /c "{command}"'


DIALECTS = {
    "unix": UnixDialect,
    "windows": WindowsDialect,
}


def get_dialect(platform: str) -> ShellDialect:
    """Get the dialect for a resolved platform tag ("unix" or "windows")."""
    try:
        return DIALECTS[platform]()
    except KeyError:
        raise ValueError(f"Unsupported platform: {platform}") from None
