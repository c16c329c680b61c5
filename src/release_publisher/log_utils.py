import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from release_publisher.constants import (
    DEBUG_LOG_FORMAT,
    INFO_LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
    LOG_FILE_NAME,
    LOG_LEVEL_ENV_VAR,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

_file_handler: Optional[RotatingFileHandler] = None


def _resolve_level(level_name: str) -> Optional[int]:
    level = getattr(logging, level_name.upper(), None)
    return level if isinstance(level, int) else None


def _file_formatter(level: int) -> logging.Formatter:
    # Logger names only add noise above DEBUG
    fmt = DEBUG_LOG_FORMAT if level < logging.INFO else INFO_LOG_FORMAT
    return logging.Formatter(fmt, datefmt=LOG_DATE_FORMAT)


def set_log_level(level_name: str) -> None:
    """Change the level of the logger and every handler; unknown names are ignored."""
    level = _resolve_level(level_name)
    if level is None:
        logger.warning(f"Invalid log level name: {level_name}. Using current level.")
        return

    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
        if handler is _file_handler:
            handler.setFormatter(_file_formatter(level))

    logger.debug(f"Log level set to {logging.getLevelName(level)}")


def add_file_logging(log_dir_path: Path, level_name: str = "INFO") -> None:
    """
    Also write the run log to `release-publisher.log` in `log_dir_path`.

    The file rotates at LOG_FILE_MAX_BYTES. Calling this again replaces the
    previous file handler. Unknown level names fall back to INFO.
    """
    global _file_handler
    if _file_handler is not None:
        logger.removeHandler(_file_handler)
        _file_handler.close()

    level = _resolve_level(level_name)
    if level is None:
        logger.warning(f"Invalid file log level name: {level_name}. Defaulting to INFO.")
        level = logging.INFO

    log_dir_path.mkdir(parents=True, exist_ok=True)
    log_file = log_dir_path / LOG_FILE_NAME
    _file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    _file_handler.setFormatter(_file_formatter(level))
    _file_handler.setLevel(level)
    logger.addHandler(_file_handler)
    logger.info(f"Writing log file {log_file}")


def _initialize_logger() -> None:
    """
    Attach the Rich console handler.

    The starting level comes from RELEASE_PUBLISHER_LOG_LEVEL, INFO otherwise.
    """
    logger.propagate = False
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        log_time_format=LOG_DATE_FORMAT,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    env_level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO")
    level = _resolve_level(env_level)
    if level is None:
        logger.warning(f"Invalid {LOG_LEVEL_ENV_VAR}={env_level}; defaulting to INFO.")
        level = logging.INFO
    logger.setLevel(level)
    console_handler.setLevel(level)


_initialize_logger()
