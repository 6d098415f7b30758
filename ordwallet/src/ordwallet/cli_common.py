"""
Command-boundary helpers shared by anything that drives ordwallet.

- setup_logging / setup_cli: consistent loguru configuration
- run_command: runs a wallet coroutine and turns ordwallet errors into a
  logged message and exit status 1. This is the only place where errors
  such as SyncTimeoutError become fatal; inside the library they are
  ordinary exceptions.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from loguru import logger

from ordwallet.backends import bitcoin_core
from ordwallet.errors import OrdWalletError
from ordwallet.settings import OrdWalletSettings, get_settings, reset_settings

T = TypeVar("T")


def setup_logging(level: str = "INFO") -> None:
    """
    Configure loguru logging with consistent format.

    Args:
        level: Log level (TRACE, DEBUG, INFO, WARNING, ERROR)
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        level=level.upper(),
        colorize=True,
    )


def setup_cli(log_level: str | None = None) -> OrdWalletSettings:
    """
    Reset the settings cache, configure logging and return settings.

    Log level priority: argument > settings (env/config) > default "INFO"
    """
    reset_settings()
    settings = get_settings()

    effective_log_level = log_level if log_level is not None else settings.logging.level
    setup_logging(effective_log_level)

    if settings.logging.sensitive:
        bitcoin_core.SENSITIVE_LOGGING = True
        logger.warning("Sensitive logging enabled: descriptors will appear in logs")

    return settings


def run_command(command: Callable[[], Coroutine[Any, Any, T]]) -> T:
    """
    Run a wallet command to completion.

    Any OrdWalletError is logged and terminates the process with status 1,
    with no partial output.
    """
    try:
        return asyncio.run(command())
    except OrdWalletError as e:
        logger.error(str(e))
        sys.exit(1)
