"""threads_token.py

Print a valid Threads access token, authorizing or refreshing as needed.

Key features
------------
* Reads client settings from ``THREADS_*`` env vars (optionally loaded from
  ``--env-file``)
* Persists tokens under ``THREADS_AUTH_STORAGE_DIR`` (or ``--storage-dir``)
* Opens the browser for the PKCE flow when no usable token is stored
* Prints the token **masked** unless ``--raw`` is given

Example
-------
    uv run python scripts/threads_token.py --status
    uv run python scripts/threads_token.py --raw
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from threads_oauth.auth import (
    AuthorizationError,
    BrowserPresenter,
    ConfigurationError,
    DiskTokenStore,
    OAuthSettings,
    PKCEFlowController,
    default_store,
)
from threads_oauth.utils.logging import mask_sensitive, setup_logging

DEFAULT_ENV_FILE = Path("scripts/.env.threads")


# --------------------------------------------------------------------------- #
# Environment helpers
# --------------------------------------------------------------------------- #
def _load_env_file(env_path: Path | None) -> None:
    """Load KEY=VALUE pairs from a .env style file into *os.environ*."""
    if env_path is None or not env_path.exists():
        return

    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = val


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[2])
    parser.add_argument("--env-file", type=Path, default=DEFAULT_ENV_FILE)
    parser.add_argument("--storage-dir", type=Path, default=None)
    parser.add_argument(
        "--proxied",
        action="store_true",
        help="use the proxied endpoint set (same as THREADS_USE_PROXIED_URLS=1)",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="print the stored token state and exit without any network call",
    )
    parser.add_argument("--raw", action="store_true", help="print the full access token")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(logging.INFO if args.verbose else None)
    _load_env_file(args.env_file)
    if args.proxied:
        os.environ["THREADS_USE_PROXIED_URLS"] = "1"

    try:
        settings = OAuthSettings.from_env()
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2

    if args.storage_dir is not None:
        store = DiskTokenStore(args.storage_dir, credential_id=settings.client_id)
    else:
        store = default_store(settings.client_id)
    controller = PKCEFlowController(settings, store, presenter=BrowserPresenter())

    try:
        if args.status:
            print(controller.token_state().value)
            return 0
        token = controller.get_access_token()
    except AuthorizationError as exc:
        print(json.dumps(exc.to_payload()), file=sys.stderr)
        return 1
    finally:
        controller.token_client.close()

    print(token if args.raw else mask_sensitive(token, 6))
    return 0


if __name__ == "__main__":
    sys.exit(main())
