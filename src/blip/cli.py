"""CLI entry point for blip: watch a directory and restart a command on changes."""

import argparse
import asyncio
import logging
import re
import sys

from blip import __version__
from blip.controller import BlipController
from blip_core.config import load_watch_config
from blip_core.notifier import LoggingNotifier
from blip_core.snapshot import parse_extensions

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m)?\s*$")
_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0}


def parse_duration(value: str) -> float:
    """
    Parse a duration such as ``500ms``, ``1.5s`` or ``2m`` into seconds.

    A bare number is taken as milliseconds.

    Raises:
        argparse.ArgumentTypeError: If the value is not a duration
    """
    match = _DURATION_RE.match(value)
    if not match:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r} (try 500ms, 1s)")
    number, unit = match.groups()
    return float(number) * _UNITS[unit or "ms"]


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Returns:
        Configured parser
    """
    parser = argparse.ArgumentParser(
        prog="blip",
        description="Watch a directory tree and restart a command whenever a tracked file changes.",
        epilog="Examples:\n"
        "  blip                                # runs `go run .` and restarts on changes\n"
        "  blip -- go run ./cmd/server         # custom command\n"
        "  blip --ext .py -- python app.py     # watch Python files\n"
        "  blip -v --interval 1s -- make run   # verbose, poll every second",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("-c", "--config", help="Path to TOML config file (default: blip.toml if present)")
    parser.add_argument("-r", "--root", help="Directory to watch (default: .)")
    parser.add_argument(
        "-i",
        "--interval",
        type=parse_duration,
        help="Poll interval, e.g. 500ms or 1s (default: 500ms)",
    )
    parser.add_argument(
        "-e",
        "--ext",
        type=parse_extensions,
        help="Comma-separated extensions to watch (default: .go,.mod,.sum,.tpl,.html,.css,.js)",
    )
    parser.add_argument(
        "--ignore-vcs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Ignore .git, .hg and .svn directories (default: on)",
    )
    parser.add_argument(
        "--grace",
        type=parse_duration,
        help="Time a child gets to exit before it is killed (default: 3s)",
    )
    parser.add_argument(
        "--delay",
        type=parse_duration,
        help="Pause between stopping and restarting (default: 100ms)",
    )
    parser.add_argument("--port", type=int, help="Wait for this local TCP port to be free before each start")
    parser.add_argument(
        "--backend",
        choices=["poll", "watchdog"],
        help="Change detection backend (default: poll)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="Verbose output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run (after --)")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    args = build_parser().parse_args(argv)
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    return args


def configure_logging(verbose: bool) -> None:
    """Send log output to stderr, INFO when verbose and WARNING otherwise."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="[blip] %(message)s",
        stream=sys.stderr,
        force=True,
    )


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the blip CLI.

    Handles:
    - Argument parsing and config file merging
    - Logging setup
    - Running the controller
    - Exit codes (0 clean, 1 startup failure, 130 interrupted)
    """
    args = parse_args(argv)

    overrides = {
        "root": args.root,
        "interval": args.interval,
        "extensions": args.ext,
        "ignore_vcs": args.ignore_vcs,
        "verbose": args.verbose,
        "command": " ".join(args.command) if args.command else None,
        "grace_period": args.grace,
        "restart_delay": args.delay,
        "port": args.port,
        "backend": args.backend,
    }

    try:
        config = load_watch_config(args.config, overrides)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.verbose)
    logger = logging.getLogger("blip")
    logger.info(f"Watching extensions: {', '.join(sorted(config.extensions))}")
    logger.info(f"Command to run: {config.command}")
    logger.info(f"Poll interval: {config.interval}s")

    controller = BlipController(config, notifier=LoggingNotifier())
    try:
        status = asyncio.run(controller.run())
    except KeyboardInterrupt:
        sys.exit(130)
    sys.exit(status)


if __name__ == "__main__":
    main()
