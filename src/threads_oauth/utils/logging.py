"""Logging helpers that keep secrets out of log output."""

from __future__ import annotations

import logging

from threads_oauth.utils.environment import is_env_truthy


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Return *value* with everything but the first *keep_chars* masked.

    >>> mask_sensitive("abcdef123456", 4)
    'abcd********'
    """
    if not value:
        return ""
    if len(value) <= keep_chars:
        return "*" * len(value)
    return value[:keep_chars] + "*" * (len(value) - keep_chars)


def setup_logging(level: int | None = None, *, stream=None) -> logging.Logger:
    """Configure the ``threads-oauth`` logger hierarchy.

    ``THREADS_OAUTH_DEBUG`` forces DEBUG when *level* is not given.
    """
    if level is None:
        level = logging.DEBUG if is_env_truthy("THREADS_OAUTH_DEBUG") else logging.WARNING

    logger = logging.getLogger("threads-oauth")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logger.addHandler(handler)
    return logger
