"""Single TCP connect probe driven by ``nc`` under an external deadline.

The probe itself is delegated to a netcat binary (``nc -z``).  Because netcat
only understands whole-second timeouts, a positive timeout is enforced twice:
``nc -w`` receives ``floor(T) + 1`` seconds and the whole invocation is wrapped
in ``timeout T`` so the precise fractional deadline always fires first.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import math
import os
import re
import shutil
import subprocess
from typing import Optional, Sequence

LOGGER = logging.getLogger(__name__)

PROBE_TOOL_CANDIDATES = ("nc", "netcat")
DEADLINE_TOOL_CANDIDATES = ("timeout", "gtimeout")
PROBE_TOOL_ENV = "TCPCHECK_NC"
DEADLINE_TOOL_ENV = "TCPCHECK_TIMEOUT_CMD"

# coreutils ``timeout`` exits with 124 when the deadline fires.
DEADLINE_EXPIRED_STATUS = 124
PROBE_REFUSED_STATUS = 1

_DOTTED_QUAD = re.compile(r"\d{1,3}(\.\d{1,3}){3}")


class MissingToolError(RuntimeError):
    """Raised when a required external utility cannot be located."""

    def __init__(self, description: str, candidates: Sequence[str]) -> None:
        self.description = description
        self.candidates = tuple(candidates)
        super().__init__(
            f"Required {description} not found (looked for: {', '.join(self.candidates)})"
        )


class ProbeError(RuntimeError):
    """Raised when the probe command fails in an unexpected way."""

    def __init__(self, command: list[str], returncode: Optional[int], output: str) -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        if returncode is None:
            message = f"Command {command!r} could not be executed: {output}"
        else:
            message = f"Command {command!r} failed with unexpected exit code {returncode}"
        super().__init__(message)


class ProbeOutcome(enum.Enum):
    REACHABLE = "reachable"
    REFUSED = "refused"
    TIMED_OUT = "timed out"
    FAILED = "failed"

    @property
    def reachable(self) -> bool:
        return self is ProbeOutcome.REACHABLE


@dataclasses.dataclass(frozen=True)
class TimeoutPolicy:
    """Split a requested timeout into a netcat timeout and an external deadline."""

    requested: float

    @property
    def bounded(self) -> bool:
        return self.requested > 0

    @property
    def probe_timeout(self) -> Optional[int]:
        """Whole seconds handed to ``nc -w``; ``None`` when unbounded."""
        if not self.bounded:
            return None
        return math.floor(self.requested) + 1

    @property
    def deadline(self) -> Optional[float]:
        """Seconds handed to the deadline enforcer; ``None`` when unbounded."""
        if not self.bounded:
            return None
        return self.requested


@dataclasses.dataclass
class ProbeResult:
    command: list[str]
    returncode: int
    output: str
    outcome: ProbeOutcome


def is_dotted_quad(host: str) -> bool:
    """Return ``True`` when ``host`` looks like a dotted IPv4 address."""

    return bool(_DOTTED_QUAD.fullmatch(host))


def find_tool(description: str, candidates: Sequence[str], env_key: str) -> str:
    """Locate an executable, honouring an explicit override in ``env_key``."""

    override = os.getenv(env_key)
    if override:
        resolved = shutil.which(override)
        if resolved is None:
            raise MissingToolError(description, [override])
        LOGGER.debug("Using %s from %s: %s", description, env_key, resolved)
        return resolved

    for candidate in candidates:
        resolved = shutil.which(candidate)
        if resolved:
            LOGGER.debug("Resolved %s to %s", description, resolved)
            return resolved
    raise MissingToolError(description, candidates)


def find_probe_tool() -> str:
    return find_tool("TCP probe tool", PROBE_TOOL_CANDIDATES, PROBE_TOOL_ENV)


def find_deadline_tool() -> str:
    return find_tool("deadline enforcer", DEADLINE_TOOL_CANDIDATES, DEADLINE_TOOL_ENV)


def build_command(
    host: str,
    port: int,
    policy: TimeoutPolicy,
    probe_tool: str,
    deadline_tool: Optional[str] = None,
) -> list[str]:
    """Return the argv for a single probe of ``host:port``."""

    command: list[str] = []
    if policy.bounded:
        if deadline_tool is None:
            raise ValueError("A deadline tool is required for a bounded timeout")
        command.extend([deadline_tool, str(policy.deadline)])

    command.extend([probe_tool, "-z"])
    if policy.probe_timeout is not None:
        command.extend(["-w", str(policy.probe_timeout)])
    if is_dotted_quad(host):
        command.append("-n")
    command.extend([host, str(port)])
    return command


def classify(returncode: int, policy: TimeoutPolicy) -> ProbeOutcome:
    if returncode == 0:
        return ProbeOutcome.REACHABLE
    if policy.bounded and returncode == DEADLINE_EXPIRED_STATUS:
        return ProbeOutcome.TIMED_OUT
    if returncode == PROBE_REFUSED_STATUS:
        return ProbeOutcome.REFUSED
    return ProbeOutcome.FAILED


def run_probe(command: list[str], policy: TimeoutPolicy) -> ProbeResult:
    """Execute ``command`` once and classify its exit status.

    Raises :class:`ProbeError` when the command cannot be launched or exits
    with a status that is neither success, refusal nor an expired deadline.
    """

    LOGGER.debug("Running probe: %s", " ".join(command))
    try:
        completed = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except OSError as exc:
        raise ProbeError(command, None, str(exc)) from exc

    output = completed.stdout or ""
    outcome = classify(completed.returncode, policy)
    LOGGER.debug("Probe exited with %s (%s)", completed.returncode, outcome.value)
    if outcome is ProbeOutcome.FAILED:
        raise ProbeError(command, completed.returncode, output)
    return ProbeResult(
        command=command,
        returncode=completed.returncode,
        output=output,
        outcome=outcome,
    )
