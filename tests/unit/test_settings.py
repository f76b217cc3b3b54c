"""Unit tests for Settings and the grouped configuration views."""

import pytest
from pydantic import ValidationError

from detee_bridge.config import Settings


class TestDefaults:
    """Tests for default values."""

    def test_worker_defaults(self):
        """Test the default hardware for new workers."""
        defaults = Settings(_env_file=None).worker_defaults
        assert (defaults.distro, defaults.vcpus, defaults.memory_mb, defaults.disk_gb, defaults.hours) == (
            "ubuntu",
            2,
            2048,
            20,
            4,
        )

    def test_docker_group(self):
        """Test that the docker view mirrors the flat fields."""
        settings = Settings(container_name="my-cli", command_timeout=45, _env_file=None)
        assert settings.docker.container_name == "my-cli"
        assert settings.docker.command_timeout == 45
        assert settings.docker.volumes == {"cli": "/root/.detee/cli", ".ssh": "/root/.ssh"}

    def test_logging_group(self):
        """Test that the logging view mirrors the flat fields."""
        settings = Settings(log_level="DEBUG", log_format="console", _env_file=None)
        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "console"

    def test_environment_override(self, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("COMMAND_TIMEOUT", "15")
        monkeypatch.setenv("DEFAULT_DISTRO", "debian")
        settings = Settings(_env_file=None)
        assert settings.command_timeout == 15
        assert settings.worker_defaults.distro == "debian"


class TestPlatform:
    """Tests for host platform resolution."""

    @pytest.mark.parametrize("platform", ["unix", "windows"])
    def test_explicit(self, platform):
        """Test that an explicit platform is used as-is."""
        assert Settings(host_platform=platform, _env_file=None).resolve_platform() == platform

    def test_auto_windows(self, monkeypatch):
        """Test that auto resolves from sys.platform."""
        monkeypatch.setattr("detee_bridge.config.sys.platform", "win32")
        assert Settings(_env_file=None).resolve_platform() == "windows"

    def test_auto_linux(self, monkeypatch):
        """Test that non-Windows hosts resolve to unix."""
        monkeypatch.setattr("detee_bridge.config.sys.platform", "linux")
        assert Settings(_env_file=None).resolve_platform() == "unix"

    def test_rejects_unknown(self):
        """Test that only known platforms are accepted."""
        with pytest.raises(ValidationError):
            Settings(host_platform="plan9", _env_file=None)


class TestValidators:
    """Tests for field validators."""

    @pytest.mark.parametrize("name", ["-cli", "detee cli", "cli;rm", ""])
    def test_container_name(self, name):
        """Test that container names follow Docker's naming rules."""
        with pytest.raises(ValidationError):
            Settings(container_name=name, _env_file=None)

    @pytest.mark.parametrize("root", ["/abs/path", "../escape", "with space"])
    def test_volume_root(self, root):
        """Test that the volume root stays relative to the home directory."""
        with pytest.raises(ValidationError):
            Settings(volume_root=root, _env_file=None)

    def test_volume_root_trailing_slash(self):
        """Test that a trailing slash is dropped."""
        assert Settings(volume_root=".detee/vol/", _env_file=None).volume_root == ".detee/vol"

    def test_container_volume_paths(self):
        """Test that container paths must be absolute."""
        with pytest.raises(ValidationError):
            Settings(container_volumes={"cli": "relative/path"}, _env_file=None)

    def test_extra_labels_known_fields(self):
        """Test that extra labels are accepted for known fields."""
        settings = Settings(parser_extra_labels={"uuid": ["VM id"]}, _env_file=None)
        assert settings.parser_extra_labels == {"uuid": ["VM id"]}

    def test_extra_labels_unknown_field(self):
        """Test that extra labels for unknown fields are rejected."""
        with pytest.raises(ValidationError):
            Settings(parser_extra_labels={"colour": ["Colour"]}, _env_file=None)

    @pytest.mark.parametrize("timeout", [0, 3601])
    def test_command_timeout_bounds(self, timeout):
        """Test that the command timeout stays within bounds."""
        with pytest.raises(ValidationError):
            Settings(command_timeout=timeout, _env_file=None)
