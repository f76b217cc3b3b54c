"""Render actions into detee-cli command lines.

Every action becomes one or more ``RenderedCommand`` values. The script that
runs inside the container is always POSIX (the CLI image is Linux); the
host-side line that reaches it through ``docker`` follows the selected
dialect. Rendering is pure: the same input always yields the same bytes.
"""

import posixpath
import re
import shlex
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from ...config import Settings
from ...models.command import RenderedCommand, VolumeMount
from ...models.errors import InvalidParameterError, UnknownActionError
from .dialect import ShellDialect

_WORKER_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]{0,63}$")

# update_worker parameter -> the only flag its pre-formatted string may carry
UPDATE_FLAGS: Tuple[Tuple[str, str], ...] = (
    ("vcpus_param", "--vcpus"),
    ("memory_param", "--memory"),
    ("hours_param", "--hours"),
)

# create_worker parameter -> detee-cli flag
DEPLOY_FLAGS: Tuple[Tuple[str, str], ...] = (
    ("distro", "--distro"),
    ("vcpus", "--vcpus"),
    ("memory_mb", "--memory"),
    ("disk_gb", "--disk"),
    ("hours", "--hours"),
)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_positive_int(parameter: str, value: Any) -> int:
    """Coerce an integer parameter given as JSON number or digit string."""
    if isinstance(value, bool):
        raise InvalidParameterError(parameter, "expected an integer, got a boolean")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise InvalidParameterError(parameter, f"expected an integer, got {value!r}")
    if number <= 0:
        raise InvalidParameterError(parameter, f"must be positive, got {number}")
    return number


class CommandRenderer:
    """Turns (action, parameters) into escaped command lines for one dialect."""

    def __init__(self, dialect: ShellDialect, config: Settings):
        self.dialect = dialect
        self._docker = config.docker
        self._defaults = config.worker_defaults
        self._cli = config.cli_binary
        self._renderers = {
            "test_install": self._render_test_install,
            "setup_container": self._render_setup_container,
            "setup_account": self._render_setup_account,
            "get_account_info": self._render_get_account_info,
            "create_worker": self._render_create_worker,
            "list_workers": self._render_list_workers,
            "get_worker": self._render_list_workers,
            "has_worker": self._render_list_workers,
            "update_worker": self._render_update_worker,
            "delete_worker": self._render_delete_worker,
        }

    def render(self, action: str, params: Optional[Mapping[str, Any]] = None) -> List[RenderedCommand]:
        """Render an action into the command(s) that carry it out, in order."""
        renderer = self._renderers.get(action)
        if renderer is None:
            raise UnknownActionError(action)
        return renderer(action, dict(params or {}))

    # ------------------------------------------------------------------
    # Parameter helpers
    # ------------------------------------------------------------------

    def resolve_deploy_params(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply worker defaults and validate create_worker parameters."""
        defaults = self._defaults
        resolved: Dict[str, Any] = {}

        distro = params.get("distro")
        distro = defaults.distro if _is_empty(distro) else str(distro).strip()
        self.dialect.validate("distro", distro)
        if distro.startswith("-"):
            raise InvalidParameterError("distro", "must not start with '-'")
        resolved["distro"] = distro

        for name in ("vcpus", "memory_mb", "disk_gb", "hours"):
            value = params.get(name)
            resolved[name] = getattr(defaults, name) if _is_empty(value) else parse_positive_int(name, value)
        return resolved

    def resolve_update_flags(self, params: Mapping[str, Any]) -> List[Tuple[str, int]]:
        """Parse the pre-formatted update strings, skipping empty ones."""
        flags: List[Tuple[str, int]] = []
        for name, flag in UPDATE_FLAGS:
            raw = params.get(name)
            if _is_empty(raw):
                continue
            if not isinstance(raw, str):
                raise InvalidParameterError(name, f"expected '{flag} NUMBER' or an empty string")
            tokens = raw.split()
            if len(tokens) != 2 or tokens[0] != flag:
                raise InvalidParameterError(name, f"expected '{flag} NUMBER', got {raw!r}")
            flags.append((flag, parse_positive_int(name, tokens[1])))
        if not flags:
            raise InvalidParameterError(
                "update_worker", "at least one of vcpus_param, memory_param, hours_param is required"
            )
        return flags

    def worker_id(self, params: Mapping[str, Any]) -> str:
        value = params.get("worker_id")
        if _is_empty(value):
            raise InvalidParameterError("worker_id", "is required")
        value = str(value).strip()
        if not _WORKER_ID.match(value):
            raise InvalidParameterError("worker_id", f"not a valid VM id: {value!r}")
        return value

    # ------------------------------------------------------------------
    # Command assembly
    # ------------------------------------------------------------------

    def _script(self, *args: Any) -> str:
        """Join arguments into a POSIX line, quoting each one independently."""
        return " ".join(shlex.quote(str(arg)) for arg in args)

    def _in_container(self, action: str, script: str) -> RenderedCommand:
        host_command = " ".join(
            [
                "docker",
                "exec",
                "-i",
                self.dialect.quote(self._docker.container_name),
                "sh",
                "-c",
                self.dialect.quote(script),
            ]
        )
        return RenderedCommand(action=action, host_command=host_command, script=script)

    def _cli_command(self, action: str, *args: Any) -> RenderedCommand:
        return self._in_container(action, self._script(self._cli, *args))

    def volume_mounts(self) -> Tuple[VolumeMount, ...]:
        docker = self._docker
        mounts = []
        for sub_dir, container_path in docker.volumes.items():
            relative = f"{docker.volume_root}/{sub_dir}"
            mounts.append(
                VolumeMount(
                    host_path=self.dialect.home_path(relative),
                    host_abs=self.dialect.expand_home(relative),
                    container_path=container_path,
                )
            )
        return tuple(mounts)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _render_test_install(self, action: str, params: Dict[str, Any]) -> List[RenderedCommand]:
        return [self._cli_command(action, "--version")]

    def _render_setup_container(self, action: str, params: Dict[str, Any]) -> List[RenderedCommand]:
        docker = self._docker
        parts = ["docker", "run"]
        if docker.pull_always:
            parts += ["--pull", "always"]
        parts += ["-dt", "--name", self.dialect.quote(docker.container_name)]
        for sub_dir, container_path in docker.volumes.items():
            relative = f"{docker.volume_root}/{sub_dir}"
            parts += ["--volume", self.dialect.volume_arg(relative, container_path)]
        parts += [
            "--entrypoint",
            self.dialect.quote(docker.entrypoint),
            self.dialect.quote(docker.image),
        ]
        return [
            RenderedCommand(
                action=action,
                host_command=" ".join(parts),
                in_container=False,
                mounts=self.volume_mounts(),
            )
        ]

    def _render_setup_account(self, action: str, params: Dict[str, Any]) -> List[RenderedCommand]:
        key_path = params.get("ssh_key_path")
        if _is_empty(key_path):
            raise InvalidParameterError("ssh_key_path", "is required")
        key_path = self.dialect.validate("ssh_key_path", str(key_path).strip())
        private_key = key_path[: -len(".pub")]
        if not key_path.startswith("/") or not key_path.endswith(".pub") or not posixpath.basename(private_key):
            raise InvalidParameterError("ssh_key_path", "must be an absolute container path ending in .pub")

        brain_url = params.get("brain_url")
        if _is_empty(brain_url):
            raise InvalidParameterError("brain_url", "is required")
        brain_url = self.dialect.validate("brain_url", str(brain_url).strip())
        parsed = urlparse(brain_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidParameterError("brain_url", f"expected an http(s) URL, got {brain_url!r}")

        keygen = (
            f"test -f {shlex.quote(key_path)} || "
            f"ssh-keygen -q -t ed25519 -f {shlex.quote(private_key)} -N ''"
        )
        return [
            self._in_container(action, keygen),
            self._cli_command(action, "account", "ssh-pubkey-path", key_path),
            self._cli_command(action, "account", "brain-url", brain_url),
        ]

    def _render_get_account_info(self, action: str, params: Dict[str, Any]) -> List[RenderedCommand]:
        return [self._cli_command(action, "account")]

    def _render_create_worker(self, action: str, params: Dict[str, Any]) -> List[RenderedCommand]:
        resolved = self.resolve_deploy_params(params)
        args: List[Any] = ["vm", "deploy"]
        for name, flag in DEPLOY_FLAGS:
            args += [flag, resolved[name]]
        return [self._cli_command(action, *args)]

    def _render_list_workers(self, action: str, params: Dict[str, Any]) -> List[RenderedCommand]:
        if action != "list_workers":
            self.worker_id(params)
        return [self._cli_command(action, "vm", "list")]

    def _render_update_worker(self, action: str, params: Dict[str, Any]) -> List[RenderedCommand]:
        worker_id = self.worker_id(params)
        args: List[Any] = ["vm", "update"]
        for flag, value in self.resolve_update_flags(params):
            args += [flag, value]
        args.append(worker_id)
        return [self._cli_command(action, *args)]

    def _render_delete_worker(self, action: str, params: Dict[str, Any]) -> List[RenderedCommand]:
        return [self._cli_command(action, "vm", "delete", self.worker_id(params))]
