"""Central logging configuration.

Usage:
    from routing_engine.logging_setup import configure_logging
    handler = configure_logging("INFO", log_file=paths.logs_root / LOG_FILE_NAME)

Engine modules only call ``logging.getLogger(__name__)``; entry points call
``configure_logging`` once and close the returned file handler on exit.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_LEVEL_ENV = "LINKROUTE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "linkroute.log"


def configure_logging(level: str | None = None, log_file: Path | None = None) -> logging.FileHandler | None:
    """
    Configure the root logger.

    Parameters
    ----------
    level:
        Level name; overrides ``LINKROUTE_LOG_LEVEL``. Unknown names mean WARNING.
    log_file:
        Optional file that also receives every record at `level` or above.
        Its directory is created if missing.

    Returns
    -------
    logging.FileHandler | None
        The handler attached for `log_file`, so the caller can remove and
        close it.
    """
    name = (level or os.getenv(LOG_LEVEL_ENV, "WARNING")).upper()
    resolved = getattr(logging, name, logging.WARNING)
    if not isinstance(resolved, int):
        resolved = logging.WARNING
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(resolved)

    if log_file is None:
        return None
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    return handler


def close_log_file(handler: logging.FileHandler | None) -> None:
    """Detach and close a handler returned by :func:`configure_logging`."""
    if handler is None:
        return
    logging.getLogger().removeHandler(handler)
    handler.close()
