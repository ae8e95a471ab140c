"""PKCE (Proof Key for Code Exchange) helpers.

RFC 7636 binds an authorization code to a *code verifier* generated locally
at the start of the flow.  Only the verifier's S256 hash (the *code
challenge*) travels through the browser; the verifier itself is sent once,
with the code exchange.

This module performs **no logging** of verifiers, challenges or states.
"""

from __future__ import annotations

import base64
import secrets
from hashlib import sha256
from typing import Final

# RFC-7636 §4.1 mandates the verifier length between 43 and 128 characters.
_VERIFIER_LEN: Final[int] = 64
_STATE_BYTES: Final[int] = 24

CHALLENGE_METHOD: Final[str] = "S256"


def generate_code_verifier(length: int = _VERIFIER_LEN) -> str:
    """Generate a high-entropy code verifier.

    Parameters
    ----------
    length:
        Desired length between 43 and 128 characters (default 64).

    Returns
    -------
    str
        Base64url text, a subset of the RFC 7636 unreserved alphabet.
    """
    if not 43 <= length <= 128:
        raise ValueError(f"code verifier must be 43-128 characters, got {length}")
    # token_urlsafe(n) yields about 1.3 * n characters, always at least n.
    return secrets.token_urlsafe(length)[:length]


def code_challenge_s256(verifier: str) -> str:
    """Return the base64url SHA-256 of *verifier*, padding stripped."""
    digest = sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    """Opaque, unguessable value echoed back by the provider on redirect."""
    return secrets.token_urlsafe(_STATE_BYTES)


def states_match(expected: str, received: str | None) -> bool:
    """Constant-time comparison of the sent and returned ``state``."""
    if not received:
        return False
    return secrets.compare_digest(expected.encode(), received.encode())
