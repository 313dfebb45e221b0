"""Logging configuration shared by the CLI and the API app."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stream handler on the root logger.

    Safe to call more than once; an existing handler installed by this
    function is replaced rather than duplicated.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_podcast_feeds", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._podcast_feeds = True
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
