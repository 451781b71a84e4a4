#!/usr/bin/env python3
"""Test whether a TCP port on a host accepts connections.

Exit status: 0 reachable, 1 not reachable, 2 help or version shown,
3 command-line error, 4 missing tool or unsupported runtime,
10 unexpected probe failure.
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
from typing import Optional

from tcpcheck import __version__
from tcpcheck.config import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_SECONDS,
    resolve_default_timeout,
    resolve_default_verbosity,
)
from tcpcheck.probe import (
    MissingToolError,
    ProbeError,
    ProbeOutcome,
    TimeoutPolicy,
    build_command,
    find_deadline_tool,
    find_probe_tool,
    is_dotted_quad,
    run_probe,
)

LOGGER = logging.getLogger(__name__)

EXIT_REACHABLE = 0
EXIT_UNREACHABLE = 1
EXIT_INFO = 2
EXIT_USAGE = 3
EXIT_ENVIRONMENT = 4
EXIT_INTERNAL = 10

MINIMUM_PYTHON = (3, 8)
STEP_SEPARATOR = "=" * 72


def log(message: str) -> None:
    print(message, flush=True)


class UsageError(Exception):
    """Raised for invalid command-line input."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port number: {value!r}")
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range (1-65535): {port}")
    return port


def _timeout(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timeout: {value!r}")
    if not math.isfinite(seconds):
        raise argparse.ArgumentTypeError(f"timeout must be a finite number of seconds: {value!r}")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="tcpcheck",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help and exit")
    parser.add_argument("-V", "--version", action="store_true", help="Show the version and exit")
    parser.add_argument(
        "-v",
        "--verbose",
        type=int,
        metavar="LEVEL",
        default=None,
        help="Verbosity level: 1 reports the result, 3 also shows the probe command",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=_timeout,
        metavar="SECONDS",
        default=None,
        help=(
            f"Seconds to wait for the connection (default {DEFAULT_TIMEOUT_SECONDS}); "
            "0 waits indefinitely"
        ),
    )
    parser.add_argument("host", nargs="?", help="Host name or IPv4 address to probe")
    parser.add_argument(
        "port",
        nargs="?",
        type=_port,
        default=DEFAULT_PORT,
        help=f"TCP port to probe (default {DEFAULT_PORT})",
    )
    return parser


def _describe(host: str, port: int, outcome: ProbeOutcome, policy: TimeoutPolicy) -> str:
    if outcome is ProbeOutcome.REACHABLE:
        return f"{host}:{port} is reachable"
    if outcome is ProbeOutcome.TIMED_OUT:
        return f"{host}:{port} is not reachable (timed out after {policy.requested}s)"
    return f"{host}:{port} is not reachable (connection refused or host unreachable)"


def _log_parameters(
    host: str,
    port: int,
    policy: TimeoutPolicy,
    probe_tool: str,
    deadline_tool: Optional[str],
) -> None:
    log(STEP_SEPARATOR)
    log(f"host: {host}")
    log(f"port: {port}")
    log(f"timeout: {policy.requested}")
    log(f"probe timeout: {policy.probe_timeout if policy.probe_timeout is not None else '(none)'}")
    log(f"numeric host: {is_dotted_quad(host)}")
    log(f"probe tool: {probe_tool}")
    log(f"deadline tool: {deadline_tool or '(unused)'}")


def _log_command(command: list[str], returncode: Optional[int], output: str) -> None:
    log(STEP_SEPARATOR)
    log(f'$ {" ".join(command)}')
    if output:
        log(output.rstrip())
    if returncode is not None:
        log(f"[exit] {returncode}")


def _usage_error(parser: argparse.ArgumentParser, message: str) -> int:
    parser.print_usage(sys.stderr)
    print(f"{parser.prog}: error: {message}", file=sys.stderr)
    return EXIT_USAGE


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        return _usage_error(parser, str(exc))

    if args.help:
        parser.print_help(sys.stdout)
        return EXIT_INFO
    if args.version:
        print(f"{parser.prog} {__version__}")
        return EXIT_INFO
    if args.host is None:
        return _usage_error(parser, "the following arguments are required: host")

    try:
        timeout = args.timeout if args.timeout is not None else resolve_default_timeout()
        verbosity = args.verbose if args.verbose is not None else resolve_default_verbosity()
    except ValueError as exc:
        return _usage_error(parser, str(exc))

    logging.basicConfig(level=logging.DEBUG if verbosity >= 3 else logging.WARNING)

    if sys.version_info < MINIMUM_PYTHON:
        required = ".".join(str(part) for part in MINIMUM_PYTHON)
        print(f"{parser.prog}: Python {required} or newer is required", file=sys.stderr)
        return EXIT_ENVIRONMENT

    policy = TimeoutPolicy(timeout)
    try:
        probe_tool = find_probe_tool()
        deadline_tool = find_deadline_tool() if policy.bounded else None
    except MissingToolError as exc:
        print(f"{parser.prog}: {exc}", file=sys.stderr)
        return EXIT_ENVIRONMENT

    if verbosity >= 3:
        _log_parameters(args.host, args.port, policy, probe_tool, deadline_tool)

    command = build_command(args.host, args.port, policy, probe_tool, deadline_tool)
    try:
        result = run_probe(command, policy)
    except ProbeError as exc:
        if verbosity >= 3:
            _log_command(exc.command, exc.returncode, exc.output)
        print(f"{parser.prog}: unexpected failure probing {args.host}:{args.port}: {exc}", file=sys.stderr)
        return EXIT_INTERNAL

    if verbosity >= 3:
        _log_command(result.command, result.returncode, result.output)
    if verbosity >= 1:
        log(_describe(args.host, args.port, result.outcome, policy))

    LOGGER.debug("Classified %s:%s as %s", args.host, args.port, result.outcome.value)
    return EXIT_REACHABLE if result.outcome.reachable else EXIT_UNREACHABLE


if __name__ == "__main__":
    raise SystemExit(main())
