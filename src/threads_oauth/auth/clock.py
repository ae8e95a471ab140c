"""Clock abstraction for the token lifecycle.

Expiry checks and ``expires_at`` arithmetic take an injected ``Clock``
instead of calling ``time.time()`` directly, so tests can freeze time.

Example
-------
>>> from threads_oauth.auth.clock import default_clock
>>> isinstance(default_clock(), float)
True
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning *seconds* since the UNIX epoch."""

    def __call__(self) -> float: ...


def default_clock() -> float:
    """Wall-clock time via ``time.time()``."""
    return time.time()


def fixed_clock(now: float) -> Clock:
    """Return a clock frozen at *now* (handy for scripts and tests)."""
    return lambda now=now: float(now)
