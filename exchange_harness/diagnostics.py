"""
Scoped log level elevation.

The exchange store only dumps its residual exchanges when its logger is
verbose enough. Completion assertions raise that logger's level right before
asserting and put it back afterwards, whatever happens in between.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from .engine.store import LOG as STORE_LOGGER, TRACE


class LogLevelScope:
    """
    Captures a logger's level on enter and restores it on exit.

    Usage:
        with LogLevelScope(STORE_LOGGER) as scope:
            wait_for_condition(...)
            scope.elevate(logging.DEBUG)
            assert store.is_empty(), "..."
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.saved_level: Optional[int] = None

    def __enter__(self):
        self.saved_level = self.logger.level
        return self

    def elevate(self, level: int):
        self.logger.setLevel(level)

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.setLevel(self.saved_level)
        return False


@contextmanager
def elevated_log_level(logger: logging.Logger, level: int):
    """Run the block with logger at level."""
    with LogLevelScope(logger) as scope:
        scope.elevate(level)
        yield logger
