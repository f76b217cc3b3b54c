"""Pytest configuration and shared fixtures."""

import shlex
from typing import Dict, List, Optional

import pytest

from detee_bridge.config import Settings
from detee_bridge.models.command import CommandResult, RenderedCommand
from detee_bridge.models.records import ContainerStatus
from detee_bridge.services import ActionDispatcher, ExecBridge

TABLE_HEADER = "| City | UUID | Hostname | Cores | Mem (MB) | Disk (GB) | LP/h | Time left |"
TABLE_RULE = "|------+------+----------+-------+----------+-----------+------+-----------|"


class FakeDeteeCli(ExecBridge):
    """In-memory detee-cli that answers rendered scripts like the real tool."""

    def __init__(self, container_name: str = "detee-cli", running: bool = False):
        self.container_name = container_name
        self.running = running
        self.executed: List[RenderedCommand] = []
        self.ensure_calls: List[RenderedCommand] = []
        self.vms: Dict[str, Dict[str, object]] = {}
        self.brain_url: Optional[str] = None
        self.ssh_key_path: Optional[str] = None
        self._counter = 0

    # ExecBridge

    def is_running(self) -> bool:
        return self.running

    def ensure_container(self, command: RenderedCommand) -> ContainerStatus:
        self.ensure_calls.append(command)
        created = not self.running
        self.running = True
        return ContainerStatus(container_id="c0ffee", name=self.container_name, created=created)

    def execute(self, command: RenderedCommand, timeout: Optional[float] = None) -> CommandResult:
        self.executed.append(command)
        if "||" in command.script:
            return CommandResult(exit_code=0, stdout="", stderr="")
        args = shlex.split(command.script)[1:]
        return self._answer(args)

    @property
    def call_count(self) -> int:
        return len(self.executed) + len(self.ensure_calls)

    # detee-cli behaviour

    def _answer(self, args: List[str]) -> CommandResult:
        if args == ["--version"]:
            return self._ok("detee-cli 0.4.2\n")
        if args[:1] == ["account"]:
            return self._account(args[1:])
        if args[:2] == ["vm", "deploy"]:
            return self._deploy(args[2:])
        if args == ["vm", "list"]:
            return self._list()
        if args[:2] == ["vm", "update"]:
            return self._update(args[2:])
        if args[:2] == ["vm", "delete"]:
            return self._delete(args[2])
        return CommandResult(exit_code=2, stdout="", stderr=f"error: unrecognized subcommand {args}\n")

    def _ok(self, stdout: str) -> CommandResult:
        return CommandResult(exit_code=0, stdout=stdout, stderr="")

    def _missing(self, worker_id: str) -> CommandResult:
        return CommandResult(exit_code=1, stdout="", stderr=f"Error: VM {worker_id} not found\n")

    def _account(self, args: List[str]) -> CommandResult:
        if args[:1] == ["ssh-pubkey-path"]:
            self.ssh_key_path = args[1]
            return self._ok("")
        if args[:1] == ["brain-url"]:
            self.brain_url = args[1]
            return self._ok("")
        lines = ["Config path: /root/.detee/cli/cli-config.yaml"]
        if self.ssh_key_path:
            lines.append(f"SSH Key Path: {self.ssh_key_path}")
        if self.brain_url:
            lines.append(f"The brain URL is: {self.brain_url}")
        lines.append("Wallet public key: 7GkqBWD2m1bF5tSoFsYt5cKkdXLkRDwq9T")
        lines.append("Account Balance: 1000 LP")
        return self._ok("\n".join(lines) + "\n")

    def _deploy(self, args: List[str]) -> CommandResult:
        flags = dict(zip(args[::2], args[1::2]))
        self._counter += 1
        worker_id = f"{self._counter:08x}-0000-4000-8000-{self._counter:012x}"
        hostname = f"quiet-otter-{self._counter}"
        self.vms[worker_id] = {
            "hostname": hostname,
            "distro": flags["--distro"],
            "vcpus": int(flags["--vcpus"]),
            "memory_mb": int(flags["--memory"]),
            "disk_gb": int(flags["--disk"]),
            "hours": int(flags["--hours"]),
        }
        port = 20000 + self._counter
        return self._ok(
            f"Using random VM name: {hostname}\n"
            "Node price: 20000/unit/minute. Total Units for hardware requested: 42\n"
            "Locking 50.4 LP (offering the VM for 4 hours).\n"
            f"VM CREATED! {worker_id}; To access the VM, run: ssh -p {port} root@203.0.113.7\n"
        )

    def _list(self) -> CommandResult:
        if not self.vms:
            return self._ok("No VMs found.\n")
        lines = [TABLE_HEADER, TABLE_RULE]
        for worker_id, vm in self.vms.items():
            lines.append(
                f"| Berlin | {worker_id} | {vm['hostname']} | {vm['vcpus']} | {vm['memory_mb']} "
                f"| {vm['disk_gb']} | 0.35 | {vm['hours']}h 0m |"
            )
        return self._ok("\n".join(lines) + "\n")

    def _update(self, args: List[str]) -> CommandResult:
        worker_id = args[-1]
        if worker_id not in self.vms:
            return self._missing(worker_id)
        vm = self.vms[worker_id]
        flags = dict(zip(args[:-1:2], args[1:-1:2]))
        lines = []
        if "--vcpus" in flags or "--memory" in flags:
            if "--vcpus" in flags:
                vm["vcpus"] = int(flags["--vcpus"])
            if "--memory" in flags:
                vm["memory_mb"] = int(flags["--memory"])
            lines.append("The node accepted the hardware modifications for the VM.")
        if "--hours" in flags:
            vm["hours"] = int(flags["--hours"])
            lines.append(f"The VM will run for another {flags['--hours']} hours.")
        return self._ok("\n".join(lines) + "\n")

    def _delete(self, worker_id: str) -> CommandResult:
        if self.vms.pop(worker_id, None) is None:
            return self._missing(worker_id)
        return self._ok("VM successfully deleted.\n")


@pytest.fixture
def test_settings():
    """Settings pinned to the Unix dialect with default worker values."""
    return Settings(host_platform="unix", exec_backend="sdk", _env_file=None)


@pytest.fixture
def fake_cli():
    """Fake CLI container that is not running yet."""
    return FakeDeteeCli()


@pytest.fixture
def dispatcher(fake_cli, test_settings):
    """Dispatcher in the Uninitialized state."""
    return ActionDispatcher(fake_cli, config=test_settings)


@pytest.fixture
def ready_dispatcher(dispatcher):
    """Dispatcher with the container running and the account configured."""
    assert dispatcher.dispatch("setup_container").ok
    response = dispatcher.dispatch(
        "setup_account",
        {"ssh_key_path": "/root/.ssh/id_ed25519.pub", "brain_url": "https://brain.example.net"},
    )
    assert response.ok, response.error
    return dispatcher
