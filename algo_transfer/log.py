"""Logging setup for algo_transfer."""

import logging
import sys

LOGGER_NAME = "algo_transfer"


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a stderr handler to the package logger.

    Idempotent: a second call only adjusts the level.
    """
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level)
    if log.handlers:
        return log

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(fmt)
    log.addHandler(handler)
    return log
