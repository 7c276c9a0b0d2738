# rollmap/logging_config.py
"""
Logging setup for the 'rollmap' namespace.

Library modules only call logging.getLogger(__name__) and never configure
anything on import. Entry points (scripts/follow_path.py) call setup_logging
once.
"""
import logging
import sys
from typing import Optional

ROOT_LOGGER = "rollmap"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Route 'rollmap' records to stdout, and to log_file if given.
    Calling again replaces the previous handlers.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    logger.addHandler(_handler(logging.StreamHandler(sys.stdout), level))
    if log_file:
        logger.addHandler(_handler(logging.FileHandler(log_file, mode="w", encoding="utf-8"), level))
    return logger
