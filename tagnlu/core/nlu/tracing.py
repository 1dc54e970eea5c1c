"""Leveled trace events, forwarded to logging and to registered listeners."""

import logging
from enum import IntEnum
from typing import Callable, List

TraceListener = Callable[["TraceLevel", str], None]


class TraceLevel(IntEnum):
    DEBUG = 10
    PERF = 15
    INFO = 20
    WARN = 30
    ERROR = 40


_LOG_LEVELS = {
    TraceLevel.DEBUG: logging.DEBUG,
    TraceLevel.PERF: logging.DEBUG,
    TraceLevel.INFO: logging.INFO,
    TraceLevel.WARN: logging.WARNING,
    TraceLevel.ERROR: logging.ERROR,
}


class Tracer:
    """
    Dispatches trace messages.

    Every message goes to the ``nlu`` logger. Listeners only receive
    messages at or above ``level``.
    """

    def __init__(self, level: TraceLevel = TraceLevel.INFO, logger_name: str = "nlu"):
        self.level = level
        self._listeners: List[TraceListener] = []
        self.log = logging.getLogger(logger_name)

    def add_listener(self, listener: TraceListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TraceListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def trace(self, level: TraceLevel, fmt: str, *args) -> None:
        message = fmt % args if args else fmt
        self.log.log(_LOG_LEVELS[level], message)
        if level < self.level:
            return
        for listener in list(self._listeners):
            try:
                listener(level, message)
            except Exception:
                self.log.exception("trace listener %r failed", listener)

    def debug(self, fmt: str, *args) -> None:
        self.trace(TraceLevel.DEBUG, fmt, *args)

    def perf(self, fmt: str, *args) -> None:
        self.trace(TraceLevel.PERF, fmt, *args)

    def info(self, fmt: str, *args) -> None:
        self.trace(TraceLevel.INFO, fmt, *args)

    def warn(self, fmt: str, *args) -> None:
        self.trace(TraceLevel.WARN, fmt, *args)

    def error(self, fmt: str, *args) -> None:
        self.trace(TraceLevel.ERROR, fmt, *args)
