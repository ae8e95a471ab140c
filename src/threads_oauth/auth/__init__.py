"""Token lifecycle core.

Building blocks for obtaining and keeping a valid Threads access token with
the OAuth 2.0 authorization-code + PKCE flow.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
pkce
    Proof-Key for Code Exchange and ``state`` helpers.
models
    Immutable token / authorization-request records and expiry rules.
config
    Client settings and the direct / proxied endpoint sets.
store
    Token persistence (disk and memory).
token_client
    Code-exchange and refresh HTTP calls.
presenter
    Browser-redirect capability used by the interactive flow.
controller
    ``PKCEFlowController`` – the single entry point for collaborators.
errors
    Exception types raised by the lifecycle.
log_utils
    Structured logging helpers and flow events.

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, default_clock, fixed_clock  # noqa: F401
from .pkce import code_challenge_s256, generate_code_verifier, generate_state  # noqa: F401
from .models import (  # noqa: F401
    AuthorizationRequest,
    TokenRecord,
    TokenState,
    classify_token,
    is_expired,
)
from .config import (  # noqa: F401
    DIRECT_ENDPOINTS,
    PROXIED_ENDPOINTS,
    EndpointSet,
    OAuthSettings,
)
from .errors import (  # noqa: F401
    AuthorizationError,
    ConfigurationError,
    InteractiveFlowCancelled,
    MalformedResponseError,
    NeedsReauthError,
    RefreshError,
    StateMismatchError,
    TokenEndpointError,
    TokenExchangeError,
    TokenStoreError,
    TransportError,
)
from .store import DiskTokenStore, MemoryTokenStore, TokenStore, default_store  # noqa: F401
from .token_client import HTTPTokenClient  # noqa: F401
from .presenter import AuthorizationPresenter, BrowserPresenter, parse_redirect  # noqa: F401
from .controller import PKCEFlowController, SingleFlight  # noqa: F401
from .log_utils import (  # noqa: F401
    EventSink,
    FlowEvent,
    LoggingEventSink,
    RecordingEventSink,
    get_auth_logger,
)

__all__ = [
    # clock
    "Clock",
    "default_clock",
    "fixed_clock",
    # pkce
    "generate_code_verifier",
    "code_challenge_s256",
    "generate_state",
    # models
    "AuthorizationRequest",
    "TokenRecord",
    "TokenState",
    "classify_token",
    "is_expired",
    # config
    "EndpointSet",
    "OAuthSettings",
    "DIRECT_ENDPOINTS",
    "PROXIED_ENDPOINTS",
    # errors
    "AuthorizationError",
    "ConfigurationError",
    "InteractiveFlowCancelled",
    "StateMismatchError",
    "NeedsReauthError",
    "TokenEndpointError",
    "TokenExchangeError",
    "RefreshError",
    "MalformedResponseError",
    "TransportError",
    "TokenStoreError",
    # store
    "TokenStore",
    "DiskTokenStore",
    "MemoryTokenStore",
    "default_store",
    # network + orchestration
    "HTTPTokenClient",
    "AuthorizationPresenter",
    "BrowserPresenter",
    "parse_redirect",
    "PKCEFlowController",
    "SingleFlight",
    # logging helpers
    "EventSink",
    "FlowEvent",
    "LoggingEventSink",
    "RecordingEventSink",
    "get_auth_logger",
]
