"""Structured logging utilities for deferguard.

Guard lifecycle events are emitted through structlog. Every event carries the
``guard_id`` of the guard it concerns, so the arm → fire/skip sequence of one
guard can be followed across a log stream.

The library never configures structlog on import. Its own events pass through
a library-scoped level filter (``DEFERGUARD_LOG_LEVEL``, default WARNING) and
are then rendered by whatever structlog setup the host application has.
``configure_logging()`` installs deferguard's renderer chain and is only run
when the caller asks for it, e.g. via ``deferguard.configure()``.
"""

import logging
import os
import sys
import time
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from deferguard.constants import DEFAULT_LOG_LEVEL, ENV_LOG_LEVEL, VALID_LOG_LEVELS


def _default_level() -> str:
    level = os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()
    if level not in VALID_LOG_LEVELS:
        return DEFAULT_LOG_LEVEL
    return level


# Minimum level for deferguard's own events; host loggers are unaffected.
_library_level: int = getattr(logging, _default_level())


def set_library_level(log_level: str) -> None:
    """Set the minimum level of events emitted by deferguard loggers."""
    global _library_level
    _library_level = getattr(logging, log_level.upper())


def add_timestamp(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add epoch timestamp to log entries."""
    event_dict["timestamp"] = time.time()
    return event_dict


def configure_logging(
    log_level: str = DEFAULT_LOG_LEVEL,
    json_output: bool = True,
    cache_loggers: bool = True,
) -> None:
    """Configure structured logging for deferguard.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON format. If False, use console format.
        cache_loggers: Passed to structlog as ``cache_logger_on_first_use``.
            Tests turn this off so ``structlog.testing.capture_logs`` sees
            events from module-level loggers.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_timestamp,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.extend([
            structlog.dev.ConsoleRenderer(colors=True),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=cache_loggers,
    )
    set_library_level(log_level)


class LibraryLogger:
    """structlog logger filtered at deferguard's own level.

    Events below the library level are dropped here; the rest go to
    ``structlog.get_logger(name)`` and through the host's processors.
    """

    def __init__(self, name: str):
        self.name = name

    def _log(self, level: int, method: str, event: str, **kw: Any) -> None:
        if level < _library_level:
            return
        getattr(structlog.get_logger(self.name), method)(event, **kw)

    def debug(self, event: str, **kw: Any) -> None:
        self._log(logging.DEBUG, "debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._log(logging.INFO, "info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._log(logging.WARNING, "warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._log(logging.ERROR, "error", event, **kw)

    def critical(self, event: str, **kw: Any) -> None:
        self._log(logging.CRITICAL, "critical", event, **kw)


def get_logger(name: str = "deferguard") -> LibraryLogger:
    """Get a deferguard logger.

    Args:
        name: Logger name (typically module name)

    Returns:
        Logger filtered at the library level
    """
    return LibraryLogger(name)


class ActionTimer:
    """Context manager timing one guard action.

    Logs ``guard action failed`` at error level when the action raises, and
    ``guard action slow`` at warning level when it exceeds ``slow_ms``.
    Exceptions are never suppressed.
    """

    def __init__(
        self,
        guard_id: str,
        policy: str,
        slow_ms: float,
        logger: Optional[LibraryLogger] = None,
    ):
        self.guard_id = guard_id
        self.policy = policy
        self.slow_ms = slow_ms
        self.logger = logger or get_logger()
        self.start_time: float = 0
        self.end_time: float = 0

    def __enter__(self) -> "ActionTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.perf_counter()
        duration_ms = (self.end_time - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(
                "guard action failed",
                guard_id=self.guard_id,
                policy=self.policy,
                duration_ms=duration_ms,
                error=f"{exc_type.__name__}: {exc_val}",
            )
        elif duration_ms > self.slow_ms:
            self.logger.warning(
                "guard action slow",
                guard_id=self.guard_id,
                policy=self.policy,
                duration_ms=duration_ms,
                threshold_ms=self.slow_ms,
            )

    @property
    def duration_ms(self) -> float:
        """Get duration in milliseconds."""
        if self.end_time == 0:
            return (time.perf_counter() - self.start_time) * 1000
        return (self.end_time - self.start_time) * 1000

