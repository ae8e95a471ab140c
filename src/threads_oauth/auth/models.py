"""Typed, immutable records for the token lifecycle."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping
from urllib.parse import urlencode

from threads_oauth.auth.errors import MalformedResponseError
from threads_oauth.auth.pkce import (
    CHALLENGE_METHOD,
    code_challenge_s256,
    generate_code_verifier,
    generate_state,
)


@dataclass(frozen=True, slots=True)
class TokenRecord:
    """Snapshot of an OAuth access/refresh token pair.

    ``expires_at`` of ``None`` means the provider never told us when the
    token expires; such a record is treated as fresh.
    """

    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None
    token_type: str | None = None
    obtained_at: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.access_token, str) or not self.access_token:
            raise ValueError("TokenRecord requires a non-empty access_token")
        for name in ("refresh_token", "token_type"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise TypeError(f"TokenRecord.{name} must be a string or None")
        for name in ("expires_at", "obtained_at"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise TypeError(f"TokenRecord.{name} must be an integer timestamp or None")

    @property
    def ttl(self) -> int | None:
        """Seconds between *obtained_at* and *expires_at*, when both are known."""
        if self.expires_at is None or self.obtained_at is None:
            return None
        return self.expires_at - self.obtained_at

    @classmethod
    def from_token_response(
        cls, payload: Any, *, obtained_at: int
    ) -> "TokenRecord":
        """Build a record from a provider JSON response.

        Raises
        ------
        MalformedResponseError
            If the payload is not an object, lacks ``access_token`` or carries
            a non-numeric ``expires_in``.
        """
        if not isinstance(payload, Mapping):
            raise MalformedResponseError("Token response is not a JSON object")

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise MalformedResponseError("Token response missing access_token")

        expires_at: int | None = None
        expires_in = payload.get("expires_in")
        if expires_in is not None:
            if isinstance(expires_in, bool):
                raise MalformedResponseError("Token response has invalid expires_in")
            try:
                expires_at = obtained_at + int(expires_in)
            except (TypeError, ValueError, OverflowError):
                raise MalformedResponseError(
                    "Token response has invalid expires_in"
                ) from None

        refresh_token = payload.get("refresh_token") or None
        token_type = payload.get("token_type") or None
        return cls(
            access_token=access_token,
            refresh_token=str(refresh_token) if refresh_token else None,
            expires_at=expires_at,
            token_type=str(token_type) if token_type else None,
            obtained_at=obtained_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TokenRecord":
        """Inverse of :meth:`to_dict`; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class TokenState(str, enum.Enum):
    """Where a stored record sits in the lifecycle."""

    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRED_WITH_REFRESH = "expired_with_refresh"
    EXPIRED_NO_REFRESH = "expired_no_refresh"


def is_expired(record: TokenRecord, now: float) -> bool:
    """True only if ``expires_at`` is known and strictly in the past."""
    return record.expires_at is not None and record.expires_at < now


def classify_token(record: TokenRecord | None, now: float) -> TokenState:
    if record is None:
        return TokenState.NO_TOKEN
    if not is_expired(record, now):
        return TokenState.VALID
    if record.refresh_token:
        return TokenState.EXPIRED_WITH_REFRESH
    return TokenState.EXPIRED_NO_REFRESH


@dataclass(frozen=True, slots=True)
class AuthorizationRequest:
    """One interactive authorization attempt. Never persisted."""

    authorize_url: str
    client_id: str
    redirect_uri: str
    scope: str
    state: str
    code_challenge: str
    code_verifier: str = field(repr=False)

    @classmethod
    def create(
        cls, *, authorize_url: str, client_id: str, redirect_uri: str, scope: str
    ) -> "AuthorizationRequest":
        """Start a new attempt with a fresh verifier, challenge and state."""
        verifier = generate_code_verifier()
        return cls(
            authorize_url=authorize_url,
            client_id=client_id,
            redirect_uri=redirect_uri,
            scope=scope,
            state=generate_state(),
            code_challenge=code_challenge_s256(verifier),
            code_verifier=verifier,
        )

    @property
    def url(self) -> str:
        """Full browser URL for the provider's authorize endpoint."""
        params = {
            "client_id": self.client_id,
            "scope": self.scope,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "code_challenge": self.code_challenge,
            "code_challenge_method": CHALLENGE_METHOD,
            "state": self.state,
        }
        separator = "&" if "?" in self.authorize_url else "?"
        return f"{self.authorize_url}{separator}{urlencode(params)}"
