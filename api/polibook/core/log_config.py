"""Logging setup for the API process."""

import logging

from polibook.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once: existing handlers are replaced.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    root.handlers = []

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

