"""
Configure logging for the relay.

All modules log through the single application logger named by LOGGER_NAME.
Lines that belong to a relay session go through a CallLogger, which prefixes
them with the session's call id so interleaved sessions can be told apart.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from app.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "ultravox_relay.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


class CallLogger(logging.LoggerAdapter):
    """Logger adapter prefixing every message with ``[call_id]``."""

    def __init__(self, call_id: Optional[str]):
        super().__init__(logging.getLogger(LOGGER_NAME), {"call_id": call_id})

    def process(self, msg, kwargs):
        return f"[{self.extra['call_id']}] {msg}", kwargs


def call_logger(call_id: Optional[str]) -> CallLogger:
    """Return the application logger bound to one call id."""
    return CallLogger(call_id)


def configure_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Set up the application logger: stdout plus a size-rotated log file.

    Calling this again replaces the handlers installed by the previous call,
    so the CLI can reconfigure the level after parsing its arguments.

    Args:
        level: Level name; defaults to the LOG_LEVEL environment variable, then INFO
        log_dir: Directory for the rotating log file; defaults to the LOG_DIR
            environment variable, then ``logs``. An empty string disables the file.

    Returns:
        logging.Logger: The configured application logger
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    if log_dir is None:
        log_dir = os.getenv("LOG_DIR", "logs")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        try:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                Path(log_dir) / LOG_FILE_NAME,
                maxBytes=MAX_LOG_SIZE,
                backupCount=BACKUP_COUNT,
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"File logging disabled, cannot write to {log_dir}: {e}")

    logger.propagate = False
    logger.debug(f"Logging configured at {level_name}")
    return logger
