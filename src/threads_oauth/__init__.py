"""Threads OAuth 2.0 PKCE client: obtain, persist and refresh access tokens."""

from threads_oauth.auth import (  # noqa: F401
    AuthorizationError,
    OAuthSettings,
    PKCEFlowController,
)

__version__ = "0.1.0"

__all__ = ["AuthorizationError", "OAuthSettings", "PKCEFlowController", "__version__"]
