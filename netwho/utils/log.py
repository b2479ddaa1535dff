"""Logging setup for netwho.

Console output keeps the short ``[*]`` / ``[warn]`` tags the tool has always
printed; ``--log-file`` adds a detailed file log for diagnosing remote hosts.
"""

import logging
import sys
import time
from functools import wraps
from pathlib import Path
from typing import Optional

ROOT = "netwho"

DETAILED_FORMAT = logging.Formatter(
    '%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-22s | %(funcName)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

_TAGS = {
    logging.DEBUG: "[dbg]",
    logging.INFO: "[*]",
    logging.WARNING: "[warn]",
    logging.ERROR: "[err]",
    logging.CRITICAL: "[err]",
}


class TagFormatter(logging.Formatter):
    """Prefix each message with a short level tag."""

    def format(self, record: logging.LogRecord) -> str:
        tag = _TAGS.get(record.levelno, "[*]")
        return f"{tag} {super().format(record)}"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure the ``netwho`` logger.

    Args:
        verbose: Show DEBUG messages on the console.
        log_file: Optional path for a detailed log.

    Returns:
        The package root logger.
    """
    logger = logging.getLogger(ROOT)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(TagFormatter('%(message)s'))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(DETAILED_FORMAT)
        logger.addHandler(file_handler)
        logger.debug(f"Log file: {log_file}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module."""
    return logging.getLogger(f'{ROOT}.{name}')


def timed(func):
    """Decorator to log function execution time."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger('perf')
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            elapsed = (time.perf_counter() - start) * 1000
            logger.debug(f"{func.__qualname__} took {elapsed:.2f}ms")
            return result
        except Exception as e:
            elapsed = (time.perf_counter() - start) * 1000
            logger.debug(f"{func.__qualname__} failed after {elapsed:.2f}ms: {e}")
            raise
    return wrapper
