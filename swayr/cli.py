"""Command line client for swayrd.

Every subcommand maps to one SwayrCommand sent to the daemon.

Examples:
    swayr switch-window
    swayr next-window current-workspace
    swayr quit-window --kill
    swayr switch-to-matching-or-urgent-or-lru-window '[app_id="firefox"]'
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from . import __version__
from .client import DaemonClient
from .errors import ConnectFailure, SwayrError
from .models.commands import (
    CYCLE_KINDS,
    RELAYOUT_KINDS,
    CommandKind,
    ConsiderFloating,
    ConsiderWindows,
    SwayrCommand,
)

DEFAULT_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEBUG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"

console = Console()
err_console = Console(stderr=True)

# Subcommand name -> CommandKind, including aliases
ALIASES = {
    "execute-raw": CommandKind.EXECUTE_SWAYMSG_COMMAND,
}

# Positional argument per kind: (dest, metavar, help)
POSITIONAL_ARGS = {
    CommandKind.SWITCH_TO_APP_OR_URGENT_OR_LRU_WINDOW: ("name", "NAME", "App id or window class to switch to"),
    CommandKind.SWITCH_TO_MARK_OR_URGENT_OR_LRU_WINDOW: ("con_mark", "MARK", "Mark of the window to switch to"),
    CommandKind.SWITCH_TO_MATCHING_OR_URGENT_OR_LRU_WINDOW: (
        "criteria",
        "CRITERIA",
        "Criteria query, e.g. '[app_id=\"foot\" title=\"vim\"]'",
    ),
}

HELP = {
    CommandKind.NOP: "Do nothing; ends a prev/next sequence",
    CommandKind.SWITCH_TO_URGENT_OR_LRU_WINDOW: "Switch to the urgent window or the last recently used one",
    CommandKind.SWITCH_TO_APP_OR_URGENT_OR_LRU_WINDOW: "Switch to an app's window, else urgent or LRU",
    CommandKind.SWITCH_TO_MARK_OR_URGENT_OR_LRU_WINDOW: "Switch to a marked window, else urgent or LRU",
    CommandKind.SWITCH_TO_MATCHING_OR_URGENT_OR_LRU_WINDOW: "Switch to a matching window, else urgent or LRU",
    CommandKind.SWITCH_WINDOW: "Pick a window from a menu",
    CommandKind.SWITCH_WORKSPACE: "Pick a workspace from a menu",
    CommandKind.SWITCH_OUTPUT: "Pick an output from a menu",
    CommandKind.SWITCH_WORKSPACE_OR_WINDOW: "Pick a workspace or window from a menu",
    CommandKind.SWITCH_WORKSPACE_CONTAINER_OR_WINDOW: "Pick a workspace, container or window from a menu",
    CommandKind.SWITCH_TO: "Pick an output, workspace, container or window from a menu",
    CommandKind.QUIT_WINDOW: "Pick a window to quit",
    CommandKind.QUIT_WORKSPACE_OR_WINDOW: "Pick a workspace or window to quit",
    CommandKind.QUIT_WORKSPACE_CONTAINER_OR_WINDOW: "Pick a workspace, container or window to quit",
    CommandKind.MOVE_FOCUSED_TO_WORKSPACE: "Move the focused window to a workspace",
    CommandKind.MOVE_FOCUSED_TO: "Move the focused window to an output, workspace, container or window",
    CommandKind.SWAP_FOCUSED_WITH: "Swap the focused window with another one",
    CommandKind.TILE_WORKSPACE: "Tile all windows of the current workspace",
    CommandKind.SHUFFLE_TILE_WORKSPACE: "Tile all windows of the current workspace in random order",
    CommandKind.TAB_WORKSPACE: "Put all windows of the current workspace into one tabbed container",
    CommandKind.TOGGLE_TAB_SHUFFLE_TILE_WORKSPACE: "Toggle between tab-workspace and shuffle-tile-workspace",
    CommandKind.EXECUTE_SWAYMSG_COMMAND: "Pick a sway command to run",
    CommandKind.EXECUTE_SWAYR_COMMAND: "Pick a swayr command to run",
    CommandKind.CONFIGURE_OUTPUTS: "Configure outputs from a menu until cancelled",
}


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """Configure logging for the swayr client.

    Args:
        verbose: Enable verbose logging (INFO level)
        debug: Enable debug logging (DEBUG level)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("swayr")
    logger.handlers.clear()

    if debug:
        logger.setLevel(logging.DEBUG)
        log_format = DEBUG_FORMAT
    elif verbose:
        logger.setLevel(logging.INFO)
        log_format = VERBOSE_FORMAT
    else:
        logger.setLevel(logging.WARNING)
        log_format = DEFAULT_FORMAT

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logger.level)
    if sys.stderr.isatty():
        handler.setFormatter(ColoredFormatter(log_format))
    else:
        handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(handler)

    return logger


def print_success(message: str) -> None:
    """Print success message in green."""
    console.print(f"[green]✓[/green] {message}", highlight=False)


def print_error(message: str) -> None:
    """Print error message in red."""
    err_console.print(f"[red]✗[/red] {message}", highlight=False)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with one subcommand per command kind."""
    parser = argparse.ArgumentParser(
        prog="swayr",
        description="swayr - LRU window switcher and more for sway (client for swayrd)",
    )
    parser.add_argument("--version", action="version", version=f"swayr {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging (INFO level)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging (DEBUG level)")
    parser.add_argument("--json", action="store_true", help="Print the daemon reply as JSON")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", help="Available commands")

    for kind in CommandKind:
        aliases = [alias for alias, target in ALIASES.items() if target is kind]
        sub = subparsers.add_parser(kind.value, aliases=aliases, help=HELP.get(kind))
        sub.set_defaults(kind=kind)

        if kind in POSITIONAL_ARGS:
            dest, metavar, arg_help = POSITIONAL_ARGS[kind]
            sub.add_argument(dest, metavar=metavar, help=arg_help)
        elif kind in CYCLE_KINDS:
            sub.add_argument(
                "windows",
                choices=[w.value for w in ConsiderWindows],
                help="Cycle through windows of all workspaces or only the current one",
            )
        elif kind in RELAYOUT_KINDS:
            sub.add_argument(
                "floating",
                choices=[f.value for f in ConsiderFloating],
                help="Whether floating windows are re-tiled too",
            )
        elif kind is CommandKind.QUIT_WINDOW:
            sub.add_argument(
                "--kill", "-k",
                action="store_true",
                help="Also kill the window's process, not only ask it to close",
            )

    status = subparsers.add_parser("status", help="Show daemon status")
    status.set_defaults(kind=None)
    ping = subparsers.add_parser("ping", help="Check that the daemon is running")
    ping.set_defaults(kind=None)

    return parser


def build_command(args: argparse.Namespace) -> SwayrCommand:
    """Build the SwayrCommand for parsed arguments.

    Raises:
        pydantic.ValidationError: If the arguments are invalid for the kind
    """
    fields = {"kind": args.kind}
    for dest in ("name", "con_mark", "criteria", "windows", "floating"):
        value = getattr(args, dest, None)
        if value is not None:
            fields[dest] = value
    if getattr(args, "kill", False):
        fields["kill"] = True
    return SwayrCommand.model_validate(fields)


def print_status(status: dict) -> None:
    table = Table(show_header=True, header_style="bold cyan", title="swayrd status")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in status.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                table.add_row(f"{key}.{sub_key}", str(sub_value))
        else:
            table.add_row(key, str(value))
    console.print(table)


async def run(args: argparse.Namespace) -> int:
    """Send the requested command to the daemon.

    Returns:
        0 on success, 1 on error
    """
    logger = logging.getLogger("swayr.cli")
    client = DaemonClient()

    try:
        if args.command == "ping":
            await client.ping()
            print_success(f"swayrd is running ({client.socket_path})")
            return 0

        if args.command == "status":
            status = await client.status()
            if args.json:
                print(json.dumps(status, indent=2))
            else:
                print_status(status)
            return 0

        cmd = build_command(args)
        logger.info(f"Sending {cmd.invocation()}")
        reply = await client.send_command(cmd)

        if args.json:
            print(json.dumps(reply.model_dump(exclude_none=True), indent=2))
        elif reply.is_noop:
            logger.info(f"Nothing to do: {reply.message}")
        elif args.verbose or args.debug:
            print_success(reply.message or reply.action)
        return 0

    except ValidationError as e:
        print_error(f"Invalid arguments: {e.errors()[0]['msg']}")
        return 1
    except ConnectFailure as e:
        print_error(e.message)
        return 1
    except SwayrError as e:
        print_error(f"{e.message} (code {e.code.value})")
        return 1


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the swayr command."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(verbose=args.verbose, debug=args.debug)

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
