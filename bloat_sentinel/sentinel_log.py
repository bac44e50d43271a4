"""
Logging setup for the bloat sentinel.

Adds two levels on top of the standard ones:
- MONITOR: observations that never trigger an intervention
- ALERT: interventions and failures an operator must see

File output is ``[YYYY-mm-dd HH:MM:SS] [LEVEL] message``. On an interactive
terminal the same records are mirrored with a coloured level tag.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

MONITOR = 25
ALERT = 45

logging.addLevelName(MONITOR, "MONITOR")
logging.addLevelName(ALERT, "ALERT")

LOGGER_NAME = "bloat_sentinel"

# Display names used in the log file; WARNING is shortened to match the shell tooling
LEVEL_LABELS: dict[int, str] = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    MONITOR: "MONITOR",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    ALERT: "ALERT",
    logging.CRITICAL: "CRITICAL",
}

LEVEL_COLORS: dict[int, str] = {
    ALERT: "\033[0;31m",
    logging.ERROR: "\033[0;31m",
    logging.WARNING: "\033[1;33m",
    logging.INFO: "\033[0;32m",
    MONITOR: "\033[0;36m",
}
RESET = "\033[0m"


def level_label(levelno: int) -> str:
    return LEVEL_LABELS.get(levelno, logging.getLevelName(levelno))


class SentinelFormatter(logging.Formatter):
    """Plain ``[timestamp] [LEVEL] message`` lines for the log file."""

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        line = f"[{timestamp}] [{level_label(record.levelno)}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ColorFormatter(logging.Formatter):
    """Terminal rendering: coloured level tag, no timestamp."""

    def format(self, record: logging.LogRecord) -> str:
        label = level_label(record.levelno)
        color = LEVEL_COLORS.get(record.levelno)
        tag = f"{color}[{label}]{RESET}" if color else f"[{label}]"
        line = f"{tag} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_file: Path | str,
    interactive: bool | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Configure the ``bloat_sentinel`` logger tree.

    Args:
        log_file: Append-only log file; its directory is created if absent
        interactive: Mirror to the terminal. Defaults to whether stdout is a TTY
        level: Minimum level recorded

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_path = Path(log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(SentinelFormatter())
    logger.addHandler(file_handler)

    if interactive is None:
        interactive = sys.stdout.isatty()
    if interactive:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColorFormatter())
        logger.addHandler(console_handler)

    return logger


__all__ = [
    "ALERT",
    "MONITOR",
    "LOGGER_NAME",
    "ColorFormatter",
    "SentinelFormatter",
    "level_label",
    "setup_logging",
]
