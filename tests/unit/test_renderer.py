"""Unit tests for the CommandRenderer and shell dialects."""

import pytest

from detee_bridge.config import Settings
from detee_bridge.models.errors import InvalidParameterError, UnknownActionError
from detee_bridge.services.shell import CommandRenderer, UnixDialect, WindowsDialect, get_dialect

WORKER_ID = "3f2a9c1e-5b7d-4e8f-9a0b-1c2d3e4f5a6b"


@pytest.fixture(params=["unix", "windows"])
def renderer(request, test_settings):
    """Renderer for each supported host platform."""
    return CommandRenderer(get_dialect(request.param), test_settings)


@pytest.fixture
def unix_renderer(test_settings):
    return CommandRenderer(UnixDialect(), test_settings)


@pytest.fixture
def windows_renderer(test_settings):
    return CommandRenderer(WindowsDialect(), test_settings)


class TestDeterminism:
    """Tests that rendering is a pure function of its input."""

    @pytest.mark.parametrize(
        "action,params",
        [
            ("test_install", {}),
            ("setup_container", {}),
            ("create_worker", {"distro": "debian", "vcpus": 4}),
            ("update_worker", {"worker_id": WORKER_ID, "hours_param": "--hours 3"}),
            ("delete_worker", {"worker_id": WORKER_ID}),
        ],
    )
    def test_same_input_same_bytes(self, renderer, action, params):
        """Test that rendering twice yields identical command strings."""
        first = [c.host_command for c in renderer.render(action, params)]
        second = [c.host_command for c in renderer.render(action, params)]
        assert first == second


class TestUpdateFlags:
    """Tests for the pre-formatted update_worker flags."""

    @pytest.mark.parametrize(
        "params,absent",
        [
            ({"vcpus_param": "", "memory_param": "--memory 4096", "hours_param": ""}, ["--vcpus", "--hours"]),
            ({"vcpus_param": "--vcpus 4", "memory_param": "", "hours_param": ""}, ["--memory", "--hours"]),
            ({"vcpus_param": "", "memory_param": "", "hours_param": "--hours 2"}, ["--vcpus", "--memory"]),
            ({"hours_param": "--hours 2"}, ["--vcpus", "--memory"]),
        ],
    )
    def test_empty_params_are_omitted(self, renderer, params, absent):
        """Test that an empty update parameter never renders its flag."""
        command = renderer.render("update_worker", {"worker_id": WORKER_ID, **params})[0]
        for flag in absent:
            assert flag not in command.script
            assert flag not in command.host_command

    def test_flags_in_fixed_order(self, unix_renderer):
        """Test that flags render as vcpus, memory, hours, then the id."""
        command = unix_renderer.render(
            "update_worker",
            {
                "worker_id": WORKER_ID,
                "hours_param": "--hours 6",
                "vcpus_param": "--vcpus 4",
                "memory_param": "--memory 8192",
            },
        )[0]
        assert command.script == f"detee-cli vm update --vcpus 4 --memory 8192 --hours 6 {WORKER_ID}"

    def test_all_empty_is_rejected(self, renderer):
        """Test that an update without any change is invalid."""
        with pytest.raises(InvalidParameterError):
            renderer.render("update_worker", {"worker_id": WORKER_ID, "vcpus_param": ""})

    @pytest.mark.parametrize(
        "value",
        ["4096", "--memory", "--memory 4096 --hours 2", "--memory -1", "--memory 0", "--memory; rm -rf /"],
    )
    def test_malformed_flag_string(self, renderer, value):
        """Test that anything but '--memory N' is rejected."""
        with pytest.raises(InvalidParameterError):
            renderer.render("update_worker", {"worker_id": WORKER_ID, "memory_param": value})


class TestCreateWorker:
    """Tests for create_worker rendering."""

    def test_defaults(self, unix_renderer):
        """Test that omitted hardware values fall back to the defaults."""
        command = unix_renderer.render("create_worker", {})[0]
        assert command.script == (
            "detee-cli vm deploy --distro ubuntu --vcpus 2 --memory 2048 --disk 20 --hours 4"
        )

    def test_numeric_strings_accepted(self, unix_renderer):
        """Test that digit strings are accepted for integer parameters."""
        resolved = unix_renderer.resolve_deploy_params({"vcpus": "8", "memory_mb": 4096.0})
        assert resolved["vcpus"] == 8
        assert resolved["memory_mb"] == 4096

    def test_configured_defaults(self):
        """Test that defaults come from settings."""
        config = Settings(host_platform="unix", default_vcpus=6, default_distro="arch", _env_file=None)
        resolved = CommandRenderer(UnixDialect(), config).resolve_deploy_params({})
        assert resolved["vcpus"] == 6
        assert resolved["distro"] == "arch"

    @pytest.mark.parametrize("name,value", [("vcpus", 0), ("vcpus", True), ("disk_gb", "20GB"), ("hours", -1)])
    def test_invalid_integers(self, unix_renderer, name, value):
        """Test that non-positive or non-integer values are rejected."""
        with pytest.raises(InvalidParameterError):
            unix_renderer.render("create_worker", {name: value})

    def test_distro_is_quoted(self, unix_renderer):
        """Test that a distro containing shell syntax stays one argument."""
        command = unix_renderer.render("create_worker", {"distro": "ubuntu; reboot"})[0]
        assert "--distro 'ubuntu; reboot'" in command.script

    def test_distro_flag_injection(self, unix_renderer):
        """Test that a distro cannot smuggle in another flag."""
        with pytest.raises(InvalidParameterError):
            unix_renderer.render("create_worker", {"distro": "--hours"})


class TestWorkerId:
    """Tests for worker id validation."""

    @pytest.mark.parametrize("worker_id", ["", "   ", "abc def", "$(reboot)", "-rf", "a" * 65])
    def test_rejected(self, renderer, worker_id):
        """Test that ids outside the VM id alphabet are rejected."""
        with pytest.raises(InvalidParameterError):
            renderer.render("delete_worker", {"worker_id": worker_id})

    def test_lookup_renders_list(self, unix_renderer):
        """Test that lookups list VMs and filter locally."""
        command = unix_renderer.render("get_worker", {"worker_id": WORKER_ID})[0]
        assert command.script == "detee-cli vm list"


class TestSetupAccount:
    """Tests for setup_account rendering."""

    PARAMS = {"ssh_key_path": "/root/.ssh/id_ed25519.pub", "brain_url": "https://brain.example.net"}

    def test_three_steps(self, unix_renderer):
        """Test key generation, key registration and brain URL registration."""
        keygen, pubkey, brain = unix_renderer.render("setup_account", self.PARAMS)
        assert keygen.script == (
            "test -f /root/.ssh/id_ed25519.pub || "
            "ssh-keygen -q -t ed25519 -f /root/.ssh/id_ed25519 -N ''"
        )
        assert pubkey.script == "detee-cli account ssh-pubkey-path /root/.ssh/id_ed25519.pub"
        assert brain.script == "detee-cli account brain-url https://brain.example.net"

    def test_windows_carries_keygen(self, windows_renderer):
        """Test that the POSIX script is wrapped in cmd-style double quotes."""
        keygen = windows_renderer.render("setup_account", self.PARAMS)[0]
        assert keygen.host_command.startswith("docker exec -i detee-cli sh -c \"test -f ")
        assert keygen.host_command.endswith("-N ''\"")

    @pytest.mark.parametrize(
        "key", ["id_ed25519.pub", "/root/.ssh/id_ed25519", "/root/.ssh/.pub"]
    )
    def test_bad_key_path(self, unix_renderer, key):
        """Test that the key must be an absolute .pub path."""
        with pytest.raises(InvalidParameterError):
            unix_renderer.render("setup_account", {**self.PARAMS, "ssh_key_path": key})

    @pytest.mark.parametrize("url", ["brain.example.net", "ftp://brain.example.net", "https://"])
    def test_bad_brain_url(self, unix_renderer, url):
        """Test that the brain URL must be http(s) with a host."""
        with pytest.raises(InvalidParameterError):
            unix_renderer.render("setup_account", {**self.PARAMS, "brain_url": url})


class TestSetupContainer:
    """Tests for the host-side docker run line."""

    def test_unix(self, unix_renderer):
        """Test the Unix docker run line with ~-relative volumes."""
        command = unix_renderer.render("setup_container")[0]
        assert command.in_container is False
        assert command.host_command == (
            "docker run --pull always -dt --name detee-cli"
            " --volume ~/.detee/container_volume/cli:/root/.detee/cli:rw"
            " --volume ~/.detee/container_volume/.ssh:/root/.ssh:rw"
            " --entrypoint /usr/bin/fish detee/detee-cli:latest"
        )

    def test_windows(self, windows_renderer):
        """Test the Windows docker run line with %USERPROFILE% volumes."""
        command = windows_renderer.render("setup_container")[0]
        assert (
            '--volume "%USERPROFILE%\\.detee\\container_volume\\cli:/root/.detee/cli:rw"'
            in command.host_command
        )

    def test_no_pull(self):
        """Test that the pull flag follows settings."""
        config = Settings(host_platform="unix", container_pull_always=False, _env_file=None)
        command = CommandRenderer(UnixDialect(), config).render("setup_container")[0]
        assert "--pull" not in command.host_command


class TestUnknownAction:
    """Tests for actions outside the catalogue."""

    def test_raises(self, renderer):
        """Test that rendering an unknown action raises."""
        with pytest.raises(UnknownActionError):
            renderer.render("reboot_worker", {})


class TestDialects:
    """Tests for the quoting rules of each dialect."""

    def test_unix_quote(self):
        """Test POSIX single-quote escaping."""
        assert UnixDialect().quote("it's") == "'it'\"'\"'s'"

    def test_unix_invocation(self):
        """Test that Unix runs commands through /bin/sh."""
        assert UnixDialect().invocation("docker ps") == ["/bin/sh", "-c", "docker ps"]

    def test_windows_bare_value(self):
        """Test that plain values stay unquoted on Windows."""
        assert WindowsDialect().quote("detee-cli") == "detee-cli"

    def test_windows_trailing_backslash(self):
        """Test that trailing backslashes are doubled before the closing quote."""
        assert WindowsDialect().quote("C:\\Program Files\\") == '"C:\\Program Files\\\\"'

    @pytest.mark.parametrize("value", ['say "hi"', "50%", "wow!", "two\nlines"])
    def test_windows_rejects_unescapable(self, value):
        """Test that cmd.exe expansion characters are rejected."""
        with pytest.raises(InvalidParameterError):
            WindowsDialect().quote(value)

    def test_windows_rejects_single_quote_in_values(self, windows_renderer):
        """Test that values cannot carry quotes that nest into the script."""
        with pytest.raises(InvalidParameterError):
            windows_renderer.render("create_worker", {"distro": "it's"})

    def test_windows_invocation(self):
        """Test that Windows runs commands through cmd.exe /s /c."""
        assert WindowsDialect().invocation("docker ps") == 'cmd.exe /d /s /c "docker ps"'

    def test_unknown_platform(self):
        """Test that only unix and windows dialects exist."""
        with pytest.raises(ValueError):
            get_dialect("plan9")
