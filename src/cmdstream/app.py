"""cmdstream command line.

Runs a command, relays its stdout/stderr live and exits with its status.

Usage:
    cmdstream [--cwd DIR] [-e KEY=VALUE]... [--no-inherit-env] [--json] [--quiet] COMMAND...

A single COMMAND argument is used as a shell command line as-is; several
arguments are quoted and joined.

Exit status: the child's status, 128+N if it was killed by signal N, 127 if it
could not be spawned.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence

from .config import Config, get_config
from .errors import ProcessError, SpawnError
from .events import ProcessEvent
from .runtime import ProcessOptions, Result

__all__ = ["main", "build_parser", "run_command", "configure_logging", "exit_code_for"]

logger = logging.getLogger(__name__)

EXIT_SPAWN_FAILED = 127
EXIT_FAILED = 1


def configure_logging(config: Config) -> None:
    """Configure log handlers for the command line."""
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        # LOG_DEBUG mode: log to a temp file
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Third-party libraries stay at WARNING
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("cmdstream").setLevel(log_level)


def _parse_env(pairs: Sequence[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {pair!r}")
        env[key] = value
    return env


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmdstream",
        description="Run a command, stream its output and report the result.",
    )
    parser.add_argument("--cwd", help="working directory for the command")
    parser.add_argument(
        "-e",
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="set an environment variable (repeatable)",
    )
    parser.add_argument(
        "--no-inherit-env",
        action="store_true",
        help="do not pass the current environment to the command",
    )
    parser.add_argument("--json", action="store_true", help="print the result as JSON")
    parser.add_argument("--quiet", action="store_true", help="do not relay the command output")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="command to run")
    return parser


def exit_code_for(result: Result) -> int:
    """Map a Result to a shell-style exit status."""
    if result.exit_status < 0:
        return 128 - result.exit_status
    return result.exit_status


def _relay(stream):
    def write(chunk: str) -> None:
        stream.write(chunk)
        stream.flush()

    return write


def run_command(args: argparse.Namespace) -> int:
    """Run the parsed command and return the exit status to use."""
    command = args.command[0] if len(args.command) == 1 else args.command

    events: list = []
    if not args.quiet:
        events.append((ProcessEvent.STDOUT, _relay(sys.stdout)))
        events.append((ProcessEvent.STDERR, _relay(sys.stderr)))

    options = ProcessOptions(
        command,
        env=_parse_env(args.env),
        cwd=args.cwd,
        events=events,
        inherit_env=not args.no_inherit_env,
    )
    process = options.create()
    process.start()

    try:
        try:
            result = process.wait_for()
        except KeyboardInterrupt:
            logger.info("Interrupted, forwarding SIGINT to the command")
            try:
                process.kill("INT")
            except ProcessError as e:
                logger.debug(f"SIGINT not delivered: {e}")
            result = process.wait_for()
    except SpawnError as e:
        print(f"cmdstream: {e}", file=sys.stderr)
        return EXIT_SPAWN_FAILED
    except ProcessError as e:
        print(f"cmdstream: {e}", file=sys.stderr)
        return EXIT_FAILED

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False))

    return exit_code_for(result)


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    configure_logging(get_config())

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    if not args.command:
        parser.error("a command is required")
    try:
        _parse_env(args.env)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    sys.exit(run_command(args))


if __name__ == "__main__":
    main()
