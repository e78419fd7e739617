"""Console logging setup shared by the CLI entry points."""

from __future__ import annotations

import logging

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: str | int = "INFO") -> None:
    """Configure root logging with a single stream handler.

    Unknown level names fall back to ``INFO``.  Chatty third-party loggers
    (httpx request lines) are held at ``WARNING``.
    """
    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    logging.basicConfig(level=level, format=_FORMAT, force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)
