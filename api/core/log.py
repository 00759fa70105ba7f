"""
Console logging setup.

Output looks like `2024-05-01 12:00:00 [INFO] message`; tracebacks are
appended below the message by the stdlib formatter.
"""

from __future__ import annotations

import logging
import sys

from . import config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def log_level() -> int:
    name = config.env_str("LOG_LEVEL", "DEBUG").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.DEBUG


def configure_logging() -> None:
    root = logging.getLogger()
    if any(getattr(h, "_afcbot", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._afcbot = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(log_level())

    # httpx logs every outbound request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
