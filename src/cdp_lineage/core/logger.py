"""
Logging for the CDP Lineage Dashboard.

Engine modules log through ``logging.getLogger(__name__)``, so configuring the
``cdp_lineage`` package logger once covers the loader, aggregator, builders
and server alike. When the API server runs, uvicorn's loggers are pointed at
the same handlers so request logs and engine logs share one stream and file.

Usage:
    from cdp_lineage.core.logger import configure_logging

    logger = configure_logging(settings, verbose=args.verbose)
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from .settings import DashboardSettings

PACKAGE_LOGGER = "cdp_lineage"
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_BACKUP_DAYS = 30


def resolve_level(level: Union[int, str]) -> int:
    """
    Accept a numeric level or a level name ("debug", "INFO", ...).

    Raises:
        ValueError: for an unknown level name
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def setup_logging(
    name: str = PACKAGE_LOGGER,
    log_file: Optional[str] = None,
    level: Union[int, str] = logging.INFO,
    log_to_stdout: bool = True,
) -> logging.Logger:
    """
    Configure and return a logger with the dashboard's pipe-delimited format.

    Calling it again replaces the handlers instead of stacking duplicates.

    Args:
        name: Logger name; the package name covers every engine module.
        log_file: Optional log file, rotated at midnight. Parent directories are created.
        level: Numeric level or level name.
        log_to_stdout: Whether to log to stdout.
    """
    logger = logging.getLogger(name)
    logger.setLevel(resolve_level(level))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if log_to_stdout:
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(line_buffering=True)
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_file, when="midnight", interval=1, backupCount=LOG_BACKUP_DAYS, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def configure_logging(
    settings: "DashboardSettings", *, verbose: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """Package logger from settings; ``verbose`` forces DEBUG and ``log_file`` beats the settings file."""
    return setup_logging(
        PACKAGE_LOGGER,
        log_file=log_file or settings.log_file,
        level=logging.DEBUG if verbose else settings.log_level,
    )


def route_server_logs(logger: Optional[logging.Logger] = None) -> None:
    """Send uvicorn's log records through the package logger's handlers."""
    logger = logger or logging.getLogger(PACKAGE_LOGGER)
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = list(logger.handlers)
        server_logger.setLevel(logger.level)
        server_logger.propagate = False
