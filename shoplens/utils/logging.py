from __future__ import annotations

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

# Library loggers that flood DEBUG output with per-request noise
_CHATTY = ("asyncio", "aiohttp.access", "aiohttp.client", "uvicorn.access")


def _resolve(level: str | int | None, env: str, default: str) -> int:
    if level is None:
        level = os.getenv(env, default)
    if isinstance(level, str):
        return _LEVELS.get(level.strip().upper(), _LEVELS[default])
    return level


def setup_logging(level: str | int | None = None) -> None:
    """
    Configure application logging with one formatter for every entry point.

    ``SHOPLENS_LOG_LEVEL`` applies when no level is passed. Library loggers
    follow ``SHOPLENS_LIB_LOG_LEVEL`` (WARNING by default) so that navigation
    traces stay readable at DEBUG.
    """
    app_level = _resolve(level, "SHOPLENS_LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    lib_level = _resolve(None, "SHOPLENS_LIB_LOG_LEVEL", "WARNING")
    for name in _CHATTY:
        logging.getLogger(name).setLevel(max(lib_level, app_level))
