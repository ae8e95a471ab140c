"""Exception types raised by the token lifecycle.

Only lightweight, **data-carrying** exceptions live here so that CLI/UI layers
can turn them into diagnostics and offer re-authorisation.  No exception ever
carries a token, verifier or client secret.
"""

from __future__ import annotations

from typing import Any


class ConfigurationError(ValueError):
    """Raised when OAuth settings are missing or inconsistent."""


class AuthorizationError(RuntimeError):
    """Base class for every failure of ``get_access_token()``."""

    code: str = "authorization_error"

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.code, "message": str(self)}


class InteractiveFlowCancelled(AuthorizationError):
    """The user aborted the browser step or denied consent."""

    code = "cancelled"

    def __init__(self, message: str | None = None, *, reason: str | None = None) -> None:
        super().__init__(message or "Authorization was cancelled.")
        self.reason = reason

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.reason:
            payload["reason"] = self.reason
        return payload


class StateMismatchError(AuthorizationError):
    """The ``state`` returned with the redirect does not match the request."""

    code = "state_mismatch"


class NeedsReauthError(AuthorizationError):
    """An interactive flow is required but no presenter is available."""

    code = "needs_reauth"

    def __init__(self, *, token_state: str, message: str | None = None) -> None:
        super().__init__(message or "Re-authentication required.")
        self.token_state = token_state

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["token_state"] = self.token_state
        return payload


class TokenEndpointError(AuthorizationError):
    """The provider answered a token request with a non-success status."""

    code = "token_endpoint_error"
    _label = "Token request"

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"{self._label} failed with HTTP {status}: {body}")
        self.status = status
        self.body = body

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload.update(status=self.status, body=self.body)
        return payload


class TokenExchangeError(TokenEndpointError):
    """Authorization-code exchange rejected (expired code, bad credentials...)."""

    code = "token_exchange_failed"
    _label = "Token exchange"


class RefreshError(TokenEndpointError):
    """Refresh rejected, usually because the refresh token was revoked."""

    code = "refresh_failed"
    _label = "Token refresh"


class MalformedResponseError(AuthorizationError):
    """Success status but the body is not a usable token response."""

    code = "malformed_response"


class TransportError(AuthorizationError):
    """Network-level failure (DNS, timeout, connection reset)."""

    code = "transport_error"


class TokenStoreError(AuthorizationError):
    """The token store is locked by another holder or its record is unreadable.

    The stored file is never modified or removed when this is raised.
    """

    code = "token_store_error"
