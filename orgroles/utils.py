"""
Shared helpers.
"""
import logging
import sys

from orgroles.core import config

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root = logging.getLogger("orgroles")
    root.addHandler(handler)
    root.setLevel(config.LOG_LEVEL)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the ``orgroles`` namespace.

    Usage:
        log = get_logger(__name__)
        log.info("Created role %s", name)
    """
    _configure_root()
    if name == "__main__" or not name.startswith("orgroles"):
        name = f"orgroles.{name}"
    return logging.getLogger(name)
