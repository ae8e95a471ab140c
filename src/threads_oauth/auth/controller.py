"""PKCEFlowController – hands out valid access tokens.

The controller is the only component collaborators talk to.  Each call to
:meth:`PKCEFlowController.get_access_token` classifies the stored record and
then either

* returns the cached token (no network),
* refreshes it through :class:`HTTPTokenClient`, or
* runs the interactive PKCE flow and exchanges the resulting code.

Every token-producing path saves the new record before returning it.  A
failed or cancelled path writes nothing, and a failed refresh is surfaced
as-is: reopening the browser is the caller's decision.

Token-producing work is *single-flight* per credential: while one caller is
refreshing or exchanging, later callers wait for that result (or error)
instead of spending the refresh token a second time.  The flight registry is
shared by every controller in the process, and stores that offer an
``update_lock()`` (such as :class:`DiskTokenStore`) extend the guarantee to
other processes using the same token file.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import nullcontext
from typing import Callable, ContextManager, Generic, TypeVar

from threads_oauth.auth.clock import Clock, default_clock
from threads_oauth.auth.config import OAuthSettings
from threads_oauth.auth.errors import AuthorizationError, NeedsReauthError
from threads_oauth.auth.log_utils import EventSink, FlowEvent, LoggingEventSink
from threads_oauth.auth.models import (
    AuthorizationRequest,
    TokenRecord,
    TokenState,
    classify_token,
)
from threads_oauth.auth.presenter import AuthorizationPresenter
from threads_oauth.auth.store import TokenStore
from threads_oauth.auth.token_client import HTTPTokenClient

_LOG = logging.getLogger("threads-oauth.auth.controller")

T = TypeVar("T")


class _Call(Generic[T]):
    __slots__ = ("done", "result", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: T | None = None
        self.error: BaseException | None = None


class SingleFlight(Generic[T]):
    """Collapse concurrent calls with the same key into one execution."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[str, _Call[T]] = {}

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._calls

    def do(
        self,
        key: str,
        fn: Callable[[], T],
        *,
        on_wait: Callable[[], None] | None = None,
    ) -> T:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call

        if not leader:
            if on_wait is not None:
                on_wait()
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result  # type: ignore[return-value]

        try:
            call.result = fn()
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                self._calls.pop(key, None)
            call.done.set()
        return call.result


# Keyed by credential id, so controllers built separately still coordinate.
_CREDENTIAL_FLIGHTS: SingleFlight[str] = SingleFlight()


class PKCEFlowController:
    """Token lifecycle state machine for one OAuth client."""

    def __init__(
        self,
        settings: OAuthSettings,
        store: TokenStore,
        *,
        presenter: AuthorizationPresenter | None = None,
        token_client: HTTPTokenClient | None = None,
        clock: Clock = default_clock,
        events: EventSink | None = None,
        credential_id: str | None = None,
        single_flight: SingleFlight[str] | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.presenter = presenter
        self._clock = clock
        self.token_client = token_client or HTTPTokenClient(settings, clock=clock)
        self._events = events or LoggingEventSink(client_id=settings.client_id)
        self.credential_id = credential_id or settings.client_id
        self._flight = single_flight or _CREDENTIAL_FLIGHTS

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def get_access_token(self) -> str:
        """Return a valid access token, refreshing or authorizing as needed.

        Raises
        ------
        AuthorizationError
            Any subclass; the stored record is unchanged in that case.
        """
        flow_id = uuid.uuid4().hex
        record = self.store.load()
        state = classify_token(record, self._clock())
        self._emit("token_loaded", flow_id, state)

        if state is TokenState.VALID and not self._flight.in_flight(self.credential_id):
            self._emit("token_valid", flow_id, state)
            return record.access_token  # type: ignore[union-attr]

        return self._flight.do(
            self.credential_id,
            lambda: self._resolve(flow_id),
            on_wait=lambda: self._emit("awaiting_inflight", flow_id, state),
        )

    authorize = get_access_token

    def token_state(self) -> TokenState:
        """Classify the stored record without any network call."""
        return classify_token(self.store.load(), self._clock())

    # ---------------- internal helpers --------------------------------- #
    def _update_guard(self) -> ContextManager[None]:
        update_lock = getattr(self.store, "update_lock", None)
        return update_lock() if update_lock is not None else nullcontext()

    def _resolve(self, flow_id: str) -> str:
        with self._update_guard():
            # Re-read under the locks: a previous leader may have just saved.
            record = self.store.load()
            state = classify_token(record, self._clock())

            if state is TokenState.VALID:
                self._emit("token_valid", flow_id, state)
                return record.access_token  # type: ignore[union-attr]
            if state is TokenState.EXPIRED_WITH_REFRESH:
                return self._refresh(flow_id, record)  # type: ignore[arg-type]
            return self._authorize_interactively(flow_id, state)

    def _refresh(self, flow_id: str, record: TokenRecord) -> str:
        state = TokenState.EXPIRED_WITH_REFRESH
        self._emit("refresh_started", flow_id, state)
        try:
            new_record = self.token_client.refresh(record.refresh_token)  # type: ignore[arg-type]
        except AuthorizationError as exc:
            self._emit("refresh_failed", flow_id, state, error=exc.code)
            raise
        self._emit(
            "refresh_succeeded",
            flow_id,
            state,
            rotated=bool(new_record.refresh_token),
        )
        return self._commit(flow_id, state, new_record)

    def _authorize_interactively(self, flow_id: str, state: TokenState) -> str:
        if self.presenter is None:
            self._emit("authorization_failed", flow_id, state, error=NeedsReauthError.code)
            raise NeedsReauthError(
                token_state=state.value,
                message="Interactive authorization required but no presenter is configured.",
            )

        self._emit("authorization_started", flow_id, state, scope=self.settings.scope)
        auth_request = AuthorizationRequest.create(
            authorize_url=self.settings.authorize_url,
            client_id=self.settings.client_id,
            redirect_uri=self.settings.redirect_uri,
            scope=self.settings.scope,
        )
        try:
            code = self.presenter.present_authorization(auth_request)
            self._emit("authorization_code_received", flow_id, state)
            new_record = self.token_client.exchange_code(auth_request, code)
        except AuthorizationError as exc:
            self._emit("authorization_failed", flow_id, state, error=exc.code)
            raise
        self._emit(
            "exchange_succeeded",
            flow_id,
            state,
            refresh_token=bool(new_record.refresh_token),
        )
        return self._commit(flow_id, state, new_record)

    def _commit(self, flow_id: str, state: TokenState, record: TokenRecord) -> str:
        self.store.save(record)
        self._emit(
            "tokens_saved",
            flow_id,
            state,
            expires_at=record.expires_at if record.expires_at is not None else "never",
        )
        return record.access_token

    def _emit(self, name: str, flow_id: str, state: TokenState, **details) -> None:
        event = FlowEvent(name=name, flow_id=flow_id, token_state=state.value, details=details)
        try:
            self._events(event)
        except Exception:  # noqa: BLE001
            _LOG.exception("Event sink failed for event=%s", name)
