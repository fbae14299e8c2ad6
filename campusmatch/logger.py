"""
Logging setup for campus-match.

Console output goes through rich; an optional daily log file receives
everything down to DEBUG. Modules call `get_logger(__name__)` and never
configure handlers themselves.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler


ROOT_LOGGER_NAME = "campusmatch"

_configured = False


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    enable_console: bool = True,
) -> logging.Logger:
    """
    Configure the package logger once.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: When given, also write campusmatch_YYYYMMDD.log there
        enable_console: Output logs to the console through rich

    Returns:
        The configured package logger
    """
    global _configured

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_dir else numeric_level)
    logger.handlers.clear()
    logger.propagate = False

    if enable_console:
        console_handler = RichHandler(rich_tracebacks=True, show_path=False)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter(fmt="%(name)s | %(message)s", datefmt="[%X]"))
        logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"campusmatch_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # file keeps everything
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    _configured = True
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a logger under the campusmatch namespace."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def is_configured() -> bool:
    return _configured


def reset_logging():
    """Drop handlers installed by configure_logging (useful for testing)."""
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    _configured = False
