"""Utility functions for reading configuration from the environment."""

from __future__ import annotations

import logging
import os
import re
from typing import Final, Mapping, Tuple

logger = logging.getLogger("threads-oauth.utils.environment")

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def is_env_truthy(name: str, env: Mapping[str, str] | None = None) -> bool:
    """Return True if env var *name* is set to a truthy value."""
    source = os.environ if env is None else env
    return _truthy(source.get(name))


def env_str(name: str, env: Mapping[str, str] | None = None) -> str | None:
    """Return the stripped value of *name*, or None when unset or blank."""
    source = os.environ if env is None else env
    value = (source.get(name) or "").strip()
    return value or None


def env_float(
    name: str, default: float, env: Mapping[str, str] | None = None
) -> float:
    """Parse *name* as a positive float, falling back to *default*.

    Invalid values are logged and ignored rather than aborting start-up.
    """
    raw = env_str(name, env)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r", name, raw)
        return default
    return value


def split_list(raw: str | None) -> tuple[str, ...]:
    """Split a comma and/or whitespace separated list, dropping blanks."""
    if not raw:
        return ()
    return tuple(part for part in re.split(r"[,\s]+", raw) if part)
