"""Logger collaborator handed to the bucketer and decision service.

The engine only ever calls ``log(level, message)``. ``StandardLogger`` routes
those calls into the stdlib ``logging`` tree so applications configure
handlers and levels the usual way; ``NoOpLogger`` drops everything.
"""

import logging
from enum import IntEnum
from typing import Protocol

DEFAULT_LOGGER_NAME = "ab_engine"


class LogLevel(IntEnum):
    NOTSET = logging.NOTSET
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR


class Logger(Protocol):
    def log(self, level: int, message: str) -> None: ...


class StandardLogger:
    """Forward engine messages to a stdlib logger."""

    def __init__(self, name: str = DEFAULT_LOGGER_NAME):
        self._logger = logging.getLogger(name)

    def log(self, level: int, message: str) -> None:
        self._logger.log(int(level), message)


class NoOpLogger:
    def log(self, level: int, message: str) -> None:
        pass
