"""OAuth client settings for the Threads API.

Two interchangeable endpoint sets exist: talking to Threads directly, or
going through a trusted OAuth proxy that holds the app secret.  Which one is
used is decided once, when :class:`OAuthSettings` is built; nothing in the
token lifecycle re-evaluates it.

Environment variables
---------------------
THREADS_CLIENT_ID
    App (client) id. Required.
THREADS_APP_SECRET
    App secret sent with the code exchange. Required.
THREADS_USE_PROXIED_URLS
    Truthy value selects :data:`PROXIED_ENDPOINTS`.
THREADS_OAUTH_SCOPES
    Comma/space separated scope override.
THREADS_OAUTH_SCOPE_SEPARATOR
    Separator used when joining scopes for the authorize URL (default: space).
THREADS_OAUTH_REDIRECT_URI
    Redirect URI override.
THREADS_HTTP_TIMEOUT
    Read timeout, in seconds, for token endpoint calls.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Final, Mapping

from threads_oauth.auth.errors import ConfigurationError
from threads_oauth.utils.environment import env_float, env_str, is_env_truthy, split_list
from threads_oauth.utils.logging import mask_sensitive

_LOG = logging.getLogger("threads-oauth.auth.config")

DEFAULT_SCOPES: Final[tuple[str, ...]] = ("threads_basic", "threads_content_publish")
DEFAULT_CONNECT_TIMEOUT: Final[float] = 5.0
DEFAULT_READ_TIMEOUT: Final[float] = 20.0


@dataclass(frozen=True, slots=True)
class EndpointSet:
    """The four URLs a PKCE client needs."""

    authorize: str
    token: str
    refresh: str
    redirect: str


DIRECT_ENDPOINTS: Final[EndpointSet] = EndpointSet(
    authorize="https://threads.net/oauth/authorize",
    token="https://graph.threads.net/oauth/access_token",
    refresh="https://graph.threads.net/refresh_access_token",
    redirect="https://www.raycast.com/redirect?packageName=Threads",
)

PROXIED_ENDPOINTS: Final[EndpointSet] = EndpointSet(
    authorize=(
        "https://oauth.raycast.com/v1/authorize/"
        "nfHB6cDPqbgj8N64YEN8-UWKH8lggowN6W87hSwqKFSL7P9PnIpnbQ2RJCCC1U8IijxCyp88VqMVFbQVeLS2l4J0v84kz4ZeSbN75ONnPJGYHft3Rr9kh7nc9KtvC2lV0g"
    ),
    token=(
        "https://oauth.raycast.com/v1/token/"
        "sprtng8yLEVTuyWdSdMWwgl_FopeRQlQgaDX3ayMGPiUi_8fOJrnPWBpUptgFjJ-B8Wvgia-f4CSZaU0XTfBhLNAYEhnKNM2oAoX4j8sOCWoWcMONkcc_FGIPJiIHMaqayNKMPXWZQ9rrQ"
    ),
    refresh=(
        "https://oauth.raycast.com/v1/refresh-token/"
        "npCE9XXNZu7rsRiPNbsAzu3Xlv5_F05E4npZWFN-w2kReNQbbvzu-Wme-TDegwPtESGjQ-aSQMx0IuefOHrO4vITK-uqpQXvfgv_1urSV_lIi6mbqTY1ngL6C5ryw_GvO7drj5KU_huqftkO"
    ),
    redirect="https://oauth.raycast.com/redirect",
)


@dataclass(frozen=True, slots=True)
class OAuthSettings:
    """Immutable client configuration consumed by the token lifecycle."""

    client_id: str
    client_secret: str
    authorize_url: str
    token_url: str
    refresh_url: str
    redirect_uri: str
    scopes: tuple[str, ...] = DEFAULT_SCOPES
    scope_separator: str = " "
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ConfigurationError("client_id is required")
        for name in ("authorize_url", "token_url", "refresh_url", "redirect_uri"):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} is required")

    def __repr__(self) -> str:
        return (
            f"OAuthSettings(client_id={mask_sensitive(self.client_id, 4)!r}, "
            f"authorize_url={self.authorize_url!r}, scopes={self.scopes!r})"
        )

    @property
    def scope(self) -> str:
        """Scopes joined the way the provider expects them in the URL."""
        return self.scope_separator.join(self.scopes)

    @property
    def timeout(self) -> tuple[float, float]:
        """``(connect, read)`` tuple accepted by :mod:`requests`."""
        return (self.connect_timeout, self.read_timeout)

    @classmethod
    def for_endpoints(
        cls,
        endpoints: EndpointSet,
        *,
        client_id: str,
        client_secret: str,
        **overrides,
    ) -> "OAuthSettings":
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            authorize_url=endpoints.authorize,
            token_url=endpoints.token,
            refresh_url=endpoints.refresh,
            redirect_uri=endpoints.redirect,
            **overrides,
        )

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "OAuthSettings":
        """Build settings from ``THREADS_*`` environment variables.

        Raises
        ------
        ConfigurationError
            If the client id or app secret is missing.
        """
        source = os.environ if env is None else env

        client_id = env_str("THREADS_CLIENT_ID", source)
        client_secret = env_str("THREADS_APP_SECRET", source)
        if not client_id or not client_secret:
            raise ConfigurationError(
                "THREADS_CLIENT_ID and THREADS_APP_SECRET must both be set"
            )

        proxied = is_env_truthy("THREADS_USE_PROXIED_URLS", source)
        endpoints = PROXIED_ENDPOINTS if proxied else DIRECT_ENDPOINTS

        settings = cls.for_endpoints(
            endpoints,
            client_id=client_id,
            client_secret=client_secret,
            scopes=split_list(source.get("THREADS_OAUTH_SCOPES")) or DEFAULT_SCOPES,
            scope_separator=source.get("THREADS_OAUTH_SCOPE_SEPARATOR") or " ",
            read_timeout=env_float("THREADS_HTTP_TIMEOUT", DEFAULT_READ_TIMEOUT, source),
        )
        redirect_override = env_str("THREADS_OAUTH_REDIRECT_URI", source)
        if redirect_override:
            settings = replace(settings, redirect_uri=redirect_override)

        _LOG.debug(
            "Loaded OAuth settings client_id=%s endpoints=%s",
            mask_sensitive(client_id, 4),
            "proxied" if proxied else "direct",
        )
        return settings
