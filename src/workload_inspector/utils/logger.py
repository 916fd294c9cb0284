"""
Centralized logging configuration for the workload inspector.
"""

# Standard library imports
import copy
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

# SGR color parameters per level
LEVEL_COLORS = {
    logging.DEBUG: "36",
    logging.INFO: "32",
    logging.WARNING: "33",
    logging.ERROR: "31",
    logging.CRITICAL: "1;31",
}

DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
FILE_FORMAT = (
    "%(asctime)s %(levelname)s [pid %(process)d %(threadName)s] "
    "%(name)s: %(message)s"
)

_HANDLER_MARKER = "_workload_inspector_handler"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when ``use_color`` is set."""

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_color: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_color = use_color

    def formatMessage(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno)
        if not self.use_color or color is None:
            return super().formatMessage(record)
        # The record is shared with every other handler
        tinted = copy.copy(record)
        tinted.levelname = f"\033[{color}m{record.levelname}\033[0m"
        return super().formatMessage(tinted)


def _resolve_level(log_level: Union[str, int], debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if isinstance(log_level, int):
        return log_level
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def set_logger(
    log_level: Union[str, int] = "INFO",
    log_file: Optional[Path] = None,
    max_bytes: int = 10_000_000,
    backup_count: int = 5,
    debug: bool = False,
) -> logging.Logger:
    """Configure the root logger and return it.

    Calling this more than once replaces the handlers installed by the
    previous call instead of stacking them.
    """
    logger = logging.getLogger()
    logger.setLevel(_resolve_level(log_level, debug))

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    # Diagnostics go to stderr so command output on stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT, use_color=sys.stderr.isatty())
    )
    setattr(console_handler, _HANDLER_MARKER, True)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        setattr(file_handler, _HANDLER_MARKER, True)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
