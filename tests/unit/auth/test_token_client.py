"""Tests for HTTPTokenClient code exchange and refresh (no network)."""

from __future__ import annotations

import pytest
import requests

from tests.fakes import FakeSession, fake_response
from threads_oauth.auth.clock import fixed_clock
from threads_oauth.auth.config import OAuthSettings
from threads_oauth.auth.errors import (
    MalformedResponseError,
    RefreshError,
    TokenExchangeError,
    TransportError,
)
from threads_oauth.auth.models import AuthorizationRequest, TokenRecord
from threads_oauth.auth.token_client import HTTPTokenClient


def _auth_request(settings: OAuthSettings) -> AuthorizationRequest:
    return AuthorizationRequest.create(
        authorize_url=settings.authorize_url,
        client_id=settings.client_id,
        redirect_uri=settings.redirect_uri,
        scope=settings.scope,
    )


def _client(settings: OAuthSettings, session: FakeSession, now: float = 1_000) -> HTTPTokenClient:
    return HTTPTokenClient(settings, session=session, clock=fixed_clock(now))  # type: ignore[arg-type]


# --------------------------------------------------------------------------- #
# Code exchange                                                               #
# --------------------------------------------------------------------------- #
def test_exchange_code_posts_pkce_form(settings: OAuthSettings) -> None:
    session = FakeSession(
        fake_response(200, {"access_token": "tok1", "refresh_token": "ref1", "expires_in": 3600})
    )
    req = _auth_request(settings)

    rec = _client(settings, session).exchange_code(req, "abc123")

    assert rec == TokenRecord(access_token="tok1", refresh_token="ref1", expires_at=4_600, obtained_at=1_000)
    (call,) = session.calls
    assert call["url"] == settings.token_url
    assert call["data"] == {
        "client_id": "client-123",
        "client_secret": "secret-xyz",
        "code": "abc123",
        "code_verifier": req.code_verifier,
        "grant_type": "authorization_code",
        "code_challenge_method": "S256",
        "redirect_uri": "https://app.test/callback",
    }
    assert call["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
    assert call["timeout"] == settings.timeout


def test_exchange_code_http_error_carries_status_and_body(settings: OAuthSettings) -> None:
    session = FakeSession(fake_response(400, text='{"error":{"message":"Invalid code"}}'))
    with pytest.raises(TokenExchangeError) as info:
        _client(settings, session).exchange_code(_auth_request(settings), "stale")

    assert info.value.status == 400
    assert "Invalid code" in info.value.body
    payload = info.value.to_payload()
    assert payload["error"] == "token_exchange_failed"
    assert payload["status"] == 400


def test_error_body_is_truncated(settings: OAuthSettings) -> None:
    session = FakeSession(fake_response(500, text="x" * 5_000))
    with pytest.raises(TokenExchangeError) as info:
        _client(settings, session).exchange_code(_auth_request(settings), "c")
    assert len(info.value.body) == 500


def test_exchange_code_missing_access_token(settings: OAuthSettings) -> None:
    session = FakeSession(fake_response(200, {"token_type": "bearer"}))
    with pytest.raises(MalformedResponseError):
        _client(settings, session).exchange_code(_auth_request(settings), "c")


def test_exchange_code_non_json_body(settings: OAuthSettings) -> None:
    session = FakeSession(fake_response(200, None, text="<html>oops</html>"))
    with pytest.raises(MalformedResponseError):
        _client(settings, session).exchange_code(_auth_request(settings), "c")


def test_transport_failure_is_translated(settings: OAuthSettings) -> None:
    session = FakeSession(requests.ConnectionError("connection reset"))
    with pytest.raises(TransportError) as info:
        _client(settings, session).exchange_code(_auth_request(settings), "c")
    assert isinstance(info.value.__cause__, requests.ConnectionError)


# --------------------------------------------------------------------------- #
# Refresh                                                                     #
# --------------------------------------------------------------------------- #
def test_refresh_posts_minimal_form(settings: OAuthSettings) -> None:
    session = FakeSession(fake_response(200, {"access_token": "tok2", "expires_in": 3600}))

    rec = _client(settings, session, now=2_000).refresh("ref1")

    assert rec == TokenRecord(access_token="tok2", expires_at=5_600, obtained_at=2_000)
    (call,) = session.calls
    assert call["url"] == settings.refresh_url
    assert call["data"] == {
        "client_id": "client-123",
        "grant_type": "refresh_token",
        "refresh_token": "ref1",
    }
    assert "client_secret" not in call["data"]


def test_refresh_http_error(settings: OAuthSettings) -> None:
    session = FakeSession(fake_response(401, text="revoked"))
    with pytest.raises(RefreshError) as info:
        _client(settings, session).refresh("ref1")
    assert (info.value.status, info.value.body) == (401, "revoked")
    assert len(session.calls) == 1  # no retry


def test_refresh_timeout_is_transport_error(settings: OAuthSettings) -> None:
    session = FakeSession(requests.Timeout("read timed out"))
    with pytest.raises(TransportError):
        _client(settings, session).refresh("ref1")


def test_close_closes_session(settings: OAuthSettings) -> None:
    session = FakeSession()
    _client(settings, session).close()
    assert session.closed
