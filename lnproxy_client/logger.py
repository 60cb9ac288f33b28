"""Levelled, thread-safe text logging with prefixes and component tags."""

from __future__ import annotations

import copy
import sys
import threading
from datetime import datetime
from enum import IntEnum
from typing import TextIO


class LogLevel(IntEnum):
    """Severity of a log message, from most to least severe."""

    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3

    def __str__(self) -> str:
        return self.name


class Logger:
    """Writes timestamped lines at or above a configured severity.

    When ``output`` is None, lines go to whatever ``sys.stderr`` is at
    the time of writing.
    """

    def __init__(self, level: LogLevel = LogLevel.DEBUG, output: TextIO | None = None):
        self._level = LogLevel(level)
        self._output = output
        self._lock = threading.Lock()
        self._prefix = ""
        self._component = ""

    @property
    def level(self) -> LogLevel:
        with self._lock:
            return self._level

    @level.setter
    def level(self, value: LogLevel) -> None:
        with self._lock:
            self._level = LogLevel(value)

    @property
    def output(self) -> TextIO | None:
        with self._lock:
            return self._output

    @output.setter
    def output(self, value: TextIO | None) -> None:
        with self._lock:
            self._output = value

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def component(self) -> str:
        return self._component

    def _derive(self, **changes: str) -> Logger:
        with self._lock:
            clone = copy.copy(self)
        clone._lock = threading.Lock()
        for name, value in changes.items():
            setattr(clone, f"_{name}", value)
        return clone

    def with_prefix(self, prefix: str) -> Logger:
        """Return a new logger that puts ``prefix`` before each message."""
        return self._derive(prefix=prefix)

    def with_component(self, component: str) -> Logger:
        """Return a new logger that tags each message with ``[component]``."""
        return self._derive(component=component)

    def _log(self, level: LogLevel, fmt: str, args: tuple) -> None:
        with self._lock:
            if level > self._level:
                return
            now = datetime.now()
            timestamp = now.strftime("%Y-%m-%d %H:%M:%S") + f".{now.microsecond // 1000:03d}"
            prefix = f"{self._prefix} " if self._prefix else ""
            component = f"[{self._component}] " if self._component else ""
            message = fmt % args if args else fmt
            line = f"{timestamp} [{level}] {prefix}{component}{message}\n"
            output = self._output if self._output is not None else sys.stderr
            try:
                output.write(line)
            except (OSError, ValueError):
                # Nothing useful can be done when logging itself fails.
                pass

    def debug(self, fmt: str, *args) -> None:
        self._log(LogLevel.DEBUG, fmt, args)

    def info(self, fmt: str, *args) -> None:
        self._log(LogLevel.INFO, fmt, args)

    def warn(self, fmt: str, *args) -> None:
        self._log(LogLevel.WARN, fmt, args)

    def error(self, fmt: str, *args) -> None:
        self._log(LogLevel.ERROR, fmt, args)


_default_logger: Logger | None = None
_default_lock = threading.Lock()


def default_logger() -> Logger:
    """Return the shared logger, created on first use at debug level."""
    global _default_logger
    with _default_lock:
        if _default_logger is None:
            _default_logger = Logger(LogLevel.DEBUG, None)
        return _default_logger


def debug(fmt: str, *args) -> None:
    default_logger().debug(fmt, *args)


def info(fmt: str, *args) -> None:
    default_logger().info(fmt, *args)


def warn(fmt: str, *args) -> None:
    default_logger().warn(fmt, *args)


def error(fmt: str, *args) -> None:
    default_logger().error(fmt, *args)


def set_global_level(level: LogLevel) -> None:
    default_logger().level = level


def set_global_output(output: TextIO | None) -> None:
    default_logger().output = output