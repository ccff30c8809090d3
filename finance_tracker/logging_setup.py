"""Package logging for ``finance_tracker``.

Modules log through ``get_logger("finance_tracker.<module>")``; only the CLI
attaches a handler, via :func:`configure_logging`.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "finance_tracker"
LEVEL_ENV = "FINANCE_TRACKER_LOG_LEVEL"

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_configured = False


def resolve_level(level: int | str | None) -> int:
    """Numeric level from ``level``, else ``$FINANCE_TRACKER_LOG_LEVEL``, else INFO."""

    if level is None:
        level = os.getenv(LEVEL_ENV, "")
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def configure_logging(level: int | str | None = None, *, stream: IO[str] | None = None) -> None:
    global _configured
    if _configured:
        return

    pkg = logging.getLogger(PACKAGE_LOGGER)
    pkg.handlers = [h for h in pkg.handlers if not isinstance(h, logging.NullHandler)]

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    pkg.addHandler(handler)
    pkg.setLevel(resolve_level(level))
    pkg.propagate = False
    _configured = True


def reset_logging() -> None:
    """Drop the package handler so the next :func:`configure_logging` starts fresh."""

    global _configured
    pkg = logging.getLogger(PACKAGE_LOGGER)
    for h in list(pkg.handlers):
        pkg.removeHandler(h)
    pkg.setLevel(logging.NOTSET)
    pkg.propagate = True
    _configured = False


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(PACKAGE_LOGGER)
    # Silent until an entrypoint configures output.
    if not _configured and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["LEVEL_ENV", "PACKAGE_LOGGER", "configure_logging", "get_logger", "reset_logging"]
