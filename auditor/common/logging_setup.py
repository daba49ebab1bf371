"""
Logging setup for the Compliance Auditor.

All modules log through named loggers under the ``auditor`` namespace.
``configure_logging`` attaches console output plus two rotating files:
``combined.log`` (everything) and ``error.log`` (errors only).
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from .config import LOGS_DIR

ROOT_LOGGER_NAME = "auditor"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 10MB per file, keep 5 backups
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5


def configure_logging(
    level: Union[str, int] = "INFO",
    logs_dir: Optional[Path] = None,
    console: bool = True,
) -> logging.Logger:
    """
    Configure the ``auditor`` logger hierarchy.

    Calling this more than once replaces the previously installed handlers,
    so the server and tests can reconfigure freely.

    Args:
        level: Log level name or number for the root ``auditor`` logger
        logs_dir: Directory for log files (defaults to ~/.auditor/logs)
        console: Also log to stderr

    Returns:
        The configured ``auditor`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    log_dir = Path(logs_dir) if logs_dir is not None else LOGS_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    combined_handler = RotatingFileHandler(
        log_dir / "combined.log", maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT
    )
    combined_handler.setFormatter(formatter)
    logger.addHandler(combined_handler)

    error_handler = RotatingFileHandler(
        log_dir / "error.log", maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    logger.addHandler(error_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
