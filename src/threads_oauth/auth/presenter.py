"""Browser-redirect capability used by the interactive flow.

The controller only depends on :class:`AuthorizationPresenter`.  Hosts with
their own UI runtime implement it; :class:`BrowserPresenter` is a console
variant that opens the authorize URL and asks the user to paste the URL the
provider redirected to.
"""

from __future__ import annotations

import logging
import webbrowser
from typing import Callable, Protocol, runtime_checkable
from urllib.parse import parse_qs, urlparse

from threads_oauth.auth.errors import InteractiveFlowCancelled, StateMismatchError
from threads_oauth.auth.models import AuthorizationRequest
from threads_oauth.auth.pkce import states_match

_LOG = logging.getLogger("threads-oauth.auth.presenter")


@runtime_checkable
class AuthorizationPresenter(Protocol):
    """Drive the user through consent and return the authorization code.

    Implementations raise :class:`InteractiveFlowCancelled` when the user
    backs out and :class:`StateMismatchError` when the redirect does not
    belong to *request*.
    """

    def present_authorization(self, request: AuthorizationRequest) -> str: ...


def parse_redirect(redirect_url: str, expected_state: str) -> str:
    """Extract the authorization code from the provider's redirect.

    Parameters
    ----------
    redirect_url:
        Full URL (or bare query string) the browser landed on.
    expected_state:
        ``state`` sent with the authorization request.

    Raises
    ------
    InteractiveFlowCancelled
        If the provider reported an error (e.g. ``access_denied``) or no code.
    StateMismatchError
        If ``state`` is missing or differs from *expected_state*.
    """
    raw = (redirect_url or "").strip()
    if not raw:
        raise InteractiveFlowCancelled("No redirect URL provided.", reason="empty")

    query = urlparse(raw).query if "://" in raw else raw.lstrip("?")
    params = parse_qs(query, keep_blank_values=False)

    error = params.get("error", [None])[0]
    if error:
        description = params.get("error_description", [None])[0] or error
        raise InteractiveFlowCancelled(
            f"Provider denied authorization: {description}", reason=error
        )

    if not states_match(expected_state, params.get("state", [None])[0]):
        raise StateMismatchError("Redirect state does not match the authorization request.")

    code = params.get("code", [None])[0]
    if not code:
        raise InteractiveFlowCancelled("Redirect did not include a code.", reason="no_code")
    # Threads appends "#_" to the code; urlparse already strips real fragments.
    return code.removesuffix("#_")


class BrowserPresenter(AuthorizationPresenter):
    """Open the system browser and read the redirected URL back from the user."""

    def __init__(
        self,
        *,
        prompt: Callable[[str], str] = input,
        open_browser: Callable[[str], bool] = webbrowser.open,
        echo: Callable[[str], None] = print,
    ) -> None:
        self._prompt = prompt
        self._open_browser = open_browser
        self._echo = echo

    def present_authorization(self, request: AuthorizationRequest) -> str:
        url = request.url
        if not self._open_browser(url):
            _LOG.info("Could not open a browser; asking the user to open the URL")
        self._echo(f"Open this URL to authorize access:\n\n  {url}\n")
        try:
            redirected = self._prompt("Paste the URL you were redirected to: ")
        except (EOFError, KeyboardInterrupt):
            raise InteractiveFlowCancelled(reason="interrupted") from None
        return parse_redirect(redirected, request.state)
