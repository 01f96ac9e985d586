# config.py - Environment configuration and stderr diagnostics for haltpoint

import os
import sys

from .errors import HaltpointError

DEFAULT_TIMEOUT = 2.0

TIMEOUT_ENV = "HALTPOINT_TIMEOUT"
DEBUG_ENV = "HALTPOINT_DEBUG"

_TRUTHY = ("1", "true", "yes", "on")


def debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV, "").strip().lower() in _TRUTHY


def log(msg: str):
    """Write a debug line to stderr when HALTPOINT_DEBUG is set."""
    if debug_enabled():
        print(f"[haltpoint] {msg}", file=sys.stderr)


def warn(msg: str):
    print(f"[haltpoint] WARN: {msg}", file=sys.stderr)


def validate_timeout(value) -> float:
    """Coerce an explicit timeout to a positive float.

    Raises HaltpointError (a ValueError) for anything else.
    """
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise HaltpointError(f"timeout must be a number, got {value!r}") from None
    if timeout <= 0:
        raise HaltpointError(f"timeout must be positive, got {timeout}")
    return timeout


def env_timeout() -> float:
    """Timeout from HALTPOINT_TIMEOUT, falling back to DEFAULT_TIMEOUT."""
    raw = os.environ.get(TIMEOUT_ENV)
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        return validate_timeout(raw)
    except HaltpointError as e:
        warn(f"ignoring {TIMEOUT_ENV}={raw!r}: {e}")
        return DEFAULT_TIMEOUT


def resolve_timeout(*candidates) -> float:
    """Return the first candidate that is not None, else the env timeout.

    Candidates are given in precedence order (CLI option, ini value, ...).
    Empty strings count as unset so blank ini values fall through.
    """
    for candidate in candidates:
        if candidate is None or candidate == "":
            continue
        return validate_timeout(candidate)
    return env_timeout()
