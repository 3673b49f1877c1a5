"""Centralized logging configuration for the API and the repair scripts."""

import logging

from config import settings

NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "multipart",
)


def setup_logging(level: str | None = None) -> None:
    """Configure root logging.

    Args:
        level: Explicit level name (e.g. from a script's ``--verbose`` flag).
            Falls back to ``settings.LOG_LEVEL``.

    Library loggers in ``NOISY_LOGGERS`` are held at WARNING regardless of
    the root level so ledger messages stay readable at DEBUG.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%H:%M:%S",
        level=getattr(logging, level_name, logging.INFO),
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
