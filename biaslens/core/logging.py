"""Logging configuration."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Configure the package logger once and return it."""
    package_logger = logging.getLogger("biaslens")
    package_logger.setLevel(level)

    # Re-imports must not stack handlers
    if not package_logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(console_handler)

    return package_logger


logger = setup_logging()
