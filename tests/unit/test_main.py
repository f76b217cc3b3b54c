"""Unit tests for the detee-bridge command line."""

import argparse
import json
from unittest.mock import patch

import pytest

from detee_bridge import main as cli


@pytest.fixture
def run_cli(dispatcher, capsys):
    """Run main() against the fake CLI and return (exit code, parsed stdout)."""

    def run(argv):
        with patch.object(cli.ActionDispatcher, "from_settings", return_value=dispatcher), patch.object(
            cli, "setup_logging"
        ):
            code = cli.main(argv)
        # Log lines may precede the response, which is always printed last
        return code, json.loads(capsys.readouterr().out.strip().splitlines()[-1])

    return run


class TestParseParams:
    """Tests for KEY=VALUE parsing."""

    def test_pairs(self):
        """Test that values may contain '='."""
        assert cli.parse_params(["worker_id=abc", "memory_param=--memory 4096", "x=a=b"]) == {
            "worker_id": "abc",
            "memory_param": "--memory 4096",
            "x": "a=b",
        }

    def test_empty_value(self):
        """Test that an empty value is kept as an empty string."""
        assert cli.parse_params(["hours_param="]) == {"hours_param": ""}

    @pytest.mark.parametrize("pair", ["novalue", "=value"])
    def test_malformed(self, pair):
        """Test that pairs without a key or '=' are rejected."""
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_params([pair])


class TestMain:
    """Tests for the main entry point."""

    def test_list(self, capsys):
        """Test that --list prints the catalogue and succeeds."""
        assert cli.main(["--list"]) == 0
        assert "create_worker" in capsys.readouterr().out

    def test_action_required(self):
        """Test that an action is required without --list."""
        with pytest.raises(SystemExit):
            cli.main([])

    def test_success_exit_code(self, run_cli, fake_cli):
        """Test that a successful action prints JSON and exits 0."""
        fake_cli.running = True
        code, output = run_cli(["test_install"])
        assert code == 0
        assert output["ok"] is True
        assert output["data"]["version"] == "0.4.2"

    def test_failure_exit_code(self, run_cli):
        """Test that a failed action exits 1 with the error object."""
        code, output = run_cli(["list_workers"])
        assert code == 1
        assert output["error"]["kind"] == "NotConfigured"

    def test_params_forwarded(self, run_cli, fake_cli):
        """Test that --param values reach the dispatcher."""
        fake_cli.running = True
        fake_cli.brain_url = "https://brain.example.net"
        code, output = run_cli(["get_worker", "--param", "worker_id=missing-vm"])
        assert code == 0
        assert output["data"] == {"found": False, "id": "missing-vm", "worker": None}
