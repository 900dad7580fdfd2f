import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str, log_file: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """
    Setup a logger with a console handler and an optional rotating file handler.

    Args:
        name: Name of the logger (usually __name__)
        log_file: Path to the log file, or None for console output only
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Handlers are attached once per logger
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = RotatingFileHandler(
                log_file, maxBytes=10*1024*1024, backupCount=5
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Failed to setup file logging to {log_file}: {e}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger configured from LOG_LEVEL / LOG_FILE."""
    return setup_logger(
        name,
        log_file=os.getenv("LOG_FILE") or None,
        level=os.getenv("LOG_LEVEL", "INFO"),
    )
