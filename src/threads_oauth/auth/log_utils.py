"""Structured logging helpers and flow events for the token lifecycle.

Two pieces live here:

* :func:`get_auth_logger` returns a :class:`logging.LoggerAdapter` that only
  ever attaches *non-sensitive* context to log records:

  - ``flow_id``        – identifier of one controller invocation (first 6 chars)
  - ``client_id``      – OAuth client id, masked
  - ``correlation_id`` – optional id wired by outer layers

* :class:`FlowEvent` / :class:`EventSink` model the per-transition
  narration of the controller as data.  The default sink
  (:class:`LoggingEventSink`) writes events through the adapter above; tests
  inject :class:`RecordingEventSink` and assert on event names instead of
  parsing log text.

Usage
-----
>>> from threads_oauth.auth.log_utils import get_auth_logger
>>> log = get_auth_logger(flow_id="3f2a9c1d0e", client_id="1234567890")
>>> log.info("Starting OAuth flow")
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, MutableMapping, Protocol, runtime_checkable

from threads_oauth.utils.logging import mask_sensitive


class _AuthLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted auth context into log records."""

    extra_keys = ("flow_id", "client_id", "correlation_id")

    def __init__(self, logger: logging.Logger, extra: Mapping[str, Any] | None = None):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if not extra or extra.get(k) is None:
                continue
            if k == "flow_id":
                extra_clean[k] = str(extra[k])[:6]
            elif k == "client_id":
                extra_clean[k] = mask_sensitive(str(extra[k]), 4)
            else:
                extra_clean[k] = extra[k]
        super().__init__(logger, extra_clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}
        # merge but do not overwrite call-site provided extras
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        return msg, kwargs


def get_auth_logger(
    *,
    base_logger_name: str = "threads-oauth.auth",
    flow_id: str | None = None,
    client_id: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    """Return a LoggerAdapter pre-filled with auth context."""
    logger = logging.getLogger(base_logger_name)
    return _AuthLoggerAdapter(
        logger,
        {
            "flow_id": flow_id,
            "client_id": client_id,
            "correlation_id": correlation_id,
        },
    )


# --------------------------------------------------------------------------- #
# Flow events                                                                 #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class FlowEvent:
    """One state transition of the controller.

    ``details`` must never contain tokens, codes or verifiers.
    """

    name: str
    flow_id: str
    token_state: str | None = None
    details: Mapping[str, Any] = field(default_factory=dict)


@runtime_checkable
class EventSink(Protocol):
    def __call__(self, event: FlowEvent) -> None: ...


_DEBUG_EVENTS = frozenset({"token_loaded", "awaiting_inflight"})
_WARNING_EVENTS = frozenset({"refresh_failed", "authorization_failed"})


class LoggingEventSink:
    """Default sink: one log line per event."""

    def __init__(
        self,
        *,
        base_logger_name: str = "threads-oauth.auth.flow",
        client_id: str | None = None,
    ) -> None:
        self._base_logger_name = base_logger_name
        self._client_id = client_id

    def __call__(self, event: FlowEvent) -> None:
        log = get_auth_logger(
            base_logger_name=self._base_logger_name,
            flow_id=event.flow_id,
            client_id=self._client_id,
        )
        if event.name in _WARNING_EVENTS:
            level = logging.WARNING
        elif event.name in _DEBUG_EVENTS:
            level = logging.DEBUG
        else:
            level = logging.INFO
        detail = " ".join(f"{k}={v}" for k, v in sorted(event.details.items()))
        log.log(
            level,
            "%s state=%s %s",
            event.name,
            event.token_state or "-",
            detail,
        )


class RecordingEventSink:
    """Thread-safe sink that keeps events in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: list[FlowEvent] = []

    def __call__(self, event: FlowEvent) -> None:
        with self._lock:
            self.events.append(event)

    @property
    def names(self) -> list[str]:
        with self._lock:
            return [e.name for e in self.events]
