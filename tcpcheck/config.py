"""Environment-driven defaults for the command line."""

from __future__ import annotations

import math
import os
from typing import Optional

DEFAULT_PORT = 22
DEFAULT_TIMEOUT_SECONDS = 0.25
DEFAULT_VERBOSITY = 0

_DEFAULT_SENTINEL = object()


def _get_env_value(*keys: str, default: Optional[str] = _DEFAULT_SENTINEL) -> Optional[str]:
    """Return the first non-empty environment variable among ``keys``."""

    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    if default is not _DEFAULT_SENTINEL:
        return default
    raise KeyError(f"None of the environment variables {keys!r} are set")


def resolve_default_timeout() -> float:
    value = _get_env_value("TCPCHECK_TIMEOUT", default=None)
    if value is None:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        seconds = float(value.strip())
    except ValueError as exc:
        raise ValueError(f"TCPCHECK_TIMEOUT must be a number of seconds, got {value!r}") from exc
    if not math.isfinite(seconds):
        raise ValueError(f"TCPCHECK_TIMEOUT must be a finite number of seconds, got {value!r}")
    return seconds


def resolve_default_verbosity() -> int:
    value = _get_env_value("TCPCHECK_VERBOSE", default=None)
    if value is None:
        return DEFAULT_VERBOSITY
    try:
        return int(value.strip())
    except ValueError as exc:
        raise ValueError(f"TCPCHECK_VERBOSE must be an integer, got {value!r}") from exc
