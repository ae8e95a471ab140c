"""Shared pytest configuration and fixtures."""

import pytest

from threads_oauth.auth.config import OAuthSettings


def pytest_configure(config):
    """Register the integration markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as exercising several components together"
    )
    config.addinivalue_line(
        "markers", "ci_safe: integration test that stubs all network calls"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly requested.

    Tests marked with 'ci_safe' are always run because they stub every
    HTTP call and only touch ``tmp_path``.
    """
    if not config.getoption("--integration", default=False):
        skip_integration = pytest.mark.skip(reason="Need --integration option to run")
        for item in items:
            if "integration" in item.keywords and "ci_safe" not in item.keywords:
                item.add_marker(skip_integration)


def pytest_addoption(parser):
    """Add integration option to pytest."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


@pytest.fixture()
def settings() -> OAuthSettings:
    """Client settings pointing at a fake provider."""
    return OAuthSettings(
        client_id="client-123",
        client_secret="secret-xyz",
        authorize_url="https://provider.test/oauth/authorize",
        token_url="https://provider.test/oauth/access_token",
        refresh_url="https://provider.test/refresh_access_token",
        redirect_uri="https://app.test/callback",
        scopes=("threads_basic", "threads_content_publish"),
    )
