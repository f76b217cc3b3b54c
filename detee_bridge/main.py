"""detee-bridge command line.

Usage:
  detee-bridge --list                          # Action catalogue
  detee-bridge setup_container                 # Create/start the CLI container
  detee-bridge setup_account --param ssh_key_path=/root/.ssh/id_ed25519.pub \\
      --param brain_url=https://brain.example.net
  detee-bridge create_worker --param vcpus=4
  detee-bridge get_worker --param worker_id=<uuid>

The response is printed to stdout as JSON. Exit status is 0 when the action
succeeded and 1 otherwise.
"""

import argparse
import sys
from typing import Dict, List, Optional

import structlog
from rich import box
from rich.console import Console
from rich.table import Table

from .config import PROVIDER_NAME, PROVIDER_TYPE, get_action, get_action_names, settings
from .services import ActionDispatcher
from .utils.logging import setup_logging

console = Console()
logger = structlog.get_logger(__name__)


def parse_params(pairs: List[str]) -> Dict[str, str]:
    """Turn ``KEY=VALUE`` pairs into a parameter mapping."""
    params: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {pair!r}")
        params[key.strip()] = value
    return params


def print_catalogue() -> None:
    table = Table(title=f"{PROVIDER_NAME} ({PROVIDER_TYPE})", box=box.SIMPLE)
    table.add_column("Action", style="cyan")
    table.add_column("Parameters")
    table.add_column("Description")
    for name in get_action_names():
        definition = get_action(name)
        params = ", ".join(
            p.name + ("" if p.required else "?") for p in definition.parameters
        )
        table.add_row(name, params or "-", definition.description)
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="detee-bridge",
        description="Drive detee-cli inside its Docker container",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("action", nargs="?", help="Action name (see --list)")
    parser.add_argument(
        "-p",
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Action parameter, repeatable",
    )
    parser.add_argument("--platform", choices=["unix", "windows"], help="Host shell dialect")
    parser.add_argument("--backend", choices=["sdk", "shell"], help="Exec backend")
    parser.add_argument("--list", action="store_true", help="List supported actions")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list:
        print_catalogue()
        return 0
    if not args.action:
        parser.error("an action is required unless --list is given")
    try:
        params = parse_params(args.param)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    setup_logging(settings)
    dispatcher = ActionDispatcher.from_settings(
        settings, platform=args.platform, backend=args.backend
    )
    dispatcher.refresh_state()
    response = dispatcher.dispatch(args.action, params)
    logger.info("Action finished", action=args.action, ok=response.ok)
    print(response.to_json())
    return 0 if response.ok else 1


if __name__ == "__main__":
    sys.exit(main())
