"""HTTP calls against the provider's token endpoints.

Two exchanges are supported, both ``application/x-www-form-urlencoded``
POSTs:

* authorization code → tokens (``grant_type=authorization_code``)
* refresh token → tokens (``grant_type=refresh_token``)

Each is a single attempt.  Retrying is left to whoever calls
``get_access_token()``.

Secrets (client secret, code, verifier, tokens) are never logged.
"""

from __future__ import annotations

import logging
from typing import Final

import requests

from threads_oauth.auth.clock import Clock, default_clock
from threads_oauth.auth.config import OAuthSettings
from threads_oauth.auth.errors import (
    MalformedResponseError,
    RefreshError,
    TokenEndpointError,
    TokenExchangeError,
    TransportError,
)
from threads_oauth.auth.models import AuthorizationRequest, TokenRecord
from threads_oauth.auth.pkce import CHALLENGE_METHOD

_LOG = logging.getLogger("threads-oauth.auth.token_client")

_BODY_LIMIT: Final[int] = 500
_FORM_HEADERS: Final[dict[str, str]] = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


class HTTPTokenClient:
    """Performs code exchange and refresh against configured endpoints."""

    def __init__(
        self,
        settings: OAuthSettings,
        *,
        session: requests.Session | None = None,
        clock: Clock = default_clock,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def exchange_code(
        self, auth_request: AuthorizationRequest, authorization_code: str
    ) -> TokenRecord:
        """Trade *authorization_code* for a token pair, proving PKCE possession."""
        payload = {
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "code": authorization_code,
            "code_verifier": auth_request.code_verifier,
            "grant_type": "authorization_code",
            "code_challenge_method": CHALLENGE_METHOD,
            "redirect_uri": auth_request.redirect_uri,
        }
        return self._post(self.settings.token_url, payload, TokenExchangeError)

    def refresh(self, refresh_token: str) -> TokenRecord:
        """Obtain a new token pair from *refresh_token*."""
        payload = {
            "client_id": self.settings.client_id,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        return self._post(self.settings.refresh_url, payload, RefreshError)

    def close(self) -> None:
        self.session.close()

    # ---------------- internal helpers --------------------------------- #
    def _post(
        self,
        url: str,
        payload: dict[str, str],
        error_cls: type[TokenEndpointError],
    ) -> TokenRecord:
        grant_type = payload["grant_type"]
        _LOG.debug("POST %s grant_type=%s", url, grant_type)
        try:
            resp = self.session.post(
                url,
                data=payload,
                headers=_FORM_HEADERS,
                timeout=self.settings.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(
                f"{grant_type} request to {url} failed: {type(exc).__name__}"
            ) from exc

        if not resp.ok:
            body = (resp.text or "")[:_BODY_LIMIT]
            _LOG.warning(
                "Token endpoint rejected grant_type=%s status=%s", grant_type, resp.status_code
            )
            raise error_cls(resp.status_code, body)

        try:
            data = resp.json()
        except ValueError:
            raise MalformedResponseError(
                f"Token endpoint returned non-JSON body (HTTP {resp.status_code})"
            ) from None

        record = TokenRecord.from_token_response(data, obtained_at=int(self._clock()))
        _LOG.info(
            "Token endpoint accepted grant_type=%s (expires in %ss, refresh_token=%s)",
            grant_type,
            record.ttl if record.ttl is not None else "unknown",
            "yes" if record.refresh_token else "no",
        )
        return record
