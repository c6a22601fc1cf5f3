"""
Logging setup for the chat client process.

Streamlit re-executes the page script on every interaction, so `app.main`
calls `configure_logging()` on each run. Only the first call installs anything:
one stdout handler on the root logger, tagged with `HANDLER_NAME`. A forced
call swaps that handler for a fresh one and leaves handlers installed by
Streamlit or by tests alone.

Environment variables, read at call time:

- ``ADOPTIMISER_LOG_LEVEL``: root level name (default ``INFO``).
- ``ADOPTIMISER_LOG_FORMAT``: record format. The default includes the thread
  name, since frames arrive on the socket thread and backend calls finish on
  job worker threads.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Dict, Final

HANDLER_NAME: Final[str] = "adoptimiser-stdout"
DEFAULT_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(threadName)s] [%(name)s] %(message)s"
DEFAULT_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Floors for chatty client libraries: per-request lines from httpx and
# per-frame lines from websocket-client.
LIBRARY_FLOORS: Final[Dict[str, int]] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "websocket": logging.WARNING,
}

_CONFIGURED: bool = False


def _resolve_level(name: str | None) -> int:
    if not name:
        return logging.INFO
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _owned_handlers(root: logging.Logger) -> list[logging.Handler]:
    return [handler for handler in root.handlers if handler.get_name() == HANDLER_NAME]


def configure_logging(*, force: bool = False) -> None:
    """
    Installs the client's stdout handler on the root logger.

    Args:
        force: Replace a previously installed handler and re-read the
            environment.
    """
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    root = logging.getLogger()
    for handler in _owned_handlers(root):
        root.removeHandler(handler)
        handler.close()

    level = _resolve_level(os.environ.get("ADOPTIMISER_LOG_LEVEL"))
    root.setLevel(level)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        logging.Formatter(
            fmt=os.environ.get("ADOPTIMISER_LOG_FORMAT") or DEFAULT_FORMAT,
            datefmt=DEFAULT_DATEFMT,
        )
    )
    root.addHandler(handler)

    for name, floor in LIBRARY_FLOORS.items():
        logging.getLogger(name).setLevel(max(floor, level))

    _CONFIGURED = True
