"""
Utilities for the archive tools
"""

import logging
from typing import Any

VERBOSITY_LEVELS = {
    0: logging.CRITICAL,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
}


def get_stream_logger(name: str, verbosity: int = 3) -> Any:
    """
    Get a logger that writes to stderr, so that it never mixes with data
    written to stdout.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level=VERBOSITY_LEVELS.get(verbosity, logging.DEBUG))
    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s:%(name)s:%(message)s"
        )
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    return logger
