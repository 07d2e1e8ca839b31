"""
Logging setup for the project health tracker.

Everything logs below the ``project_health`` logger. Records carry the
assessment context (project, week, operation) that is active when they are
emitted; the context lives in a ``ContextVar`` so concurrent requests served
by the API never see each other's values.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
import time
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from types import TracebackType
from typing import Any, NamedTuple, ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")

ROOT_LOGGER = "project_health"
CONTEXT_FIELDS = ("project_id", "week", "request_id", "operation")

# Third-party loggers that are only interesting when something goes wrong.
QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "alembic.runtime.migration")

_context: ContextVar[dict[str, Any]] = ContextVar("project_health_log_context", default={})


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, with the assessment context inlined."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            {field: record.__dict__[field] for field in CONTEXT_FIELDS if field in record.__dict__}
        )
        if "duration_ms" in record.__dict__:
            entry["duration_ms"] = record.__dict__["duration_ms"]

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, ensure_ascii=False, default=str)


class ContextFilter(logging.Filter):
    """Copies the active assessment context onto every record it sees."""

    @property
    def context(self) -> dict[str, Any]:
        return dict(_context.get())

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


context_filter = ContextFilter()


def set_context(**values: Any) -> None:
    """
    Add values to the logging context of the current task.

    Example:
        >>> set_context(project_id="p-1", week="2024-W07")
    """
    _context.set({**_context.get(), **values})


def clear_context() -> None:
    _context.set({})


class LogContext:
    """Scope extra context to a ``with`` block; the previous context is restored on exit."""

    def __init__(self, **values: Any):
        self.values = values
        self._token = None

    def __enter__(self) -> LogContext:
        self._token = _context.set({**_context.get(), **self.values})
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger nested under ``project_health``.

    Example:
        >>> get_logger("project_health.web").name
        'project_health.web'
        >>> get_logger("database").name
        'project_health.database'
    """
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def _handler_configs(
    level: str,
    log_file: str | None,
    structured: bool,
    enable_console: bool,
    max_bytes: int,
    backup_count: int,
) -> dict[str, dict[str, Any]]:
    handlers: dict[str, dict[str, Any]] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "json" if structured else "plain",
            "filters": ["assessment_context"],
            "stream": "ext://sys.stdout",
        }
    if log_file:
        # Files are always JSON so they can be shipped as-is.
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "json",
            "filters": ["assessment_context"],
            "filename": log_file,
            "maxBytes": max_bytes,
            "backupCount": backup_count,
            "encoding": "utf-8",
        }
    return handlers


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    structured: bool = True,
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    (Re)configure the ``project_health`` logger tree.

    Args:
        level: Minimum level for application loggers
        log_file: Rotating JSON log file; its directory is created if needed
        structured: JSON on the console instead of plain text
        enable_console: Whether to write to stdout
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files kept on disk

    Example:
        >>> setup_logging(level="DEBUG", log_file="./logs/project_health.log")
    """
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handlers = _handler_configs(
        level, log_file, structured, enable_console, max_bytes, backup_count
    )
    names = list(handlers)

    loggers: dict[str, dict[str, Any]] = {
        ROOT_LOGGER: {"level": level, "handlers": names, "propagate": False}
    }
    for noisy in QUIET_LOGGERS:
        loggers[noisy] = {"level": "WARNING", "handlers": names, "propagate": False}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": StructuredFormatter},
                "plain": {
                    "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "filters": {"assessment_context": {"()": lambda: context_filter}},
            "handlers": handlers,
            "loggers": loggers,
            "root": {"level": "WARNING", "handlers": names},
        }
    )


def _timed(
    operation: str, logger_for: Callable[[Callable[..., Any]], logging.Logger], level: int
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            logger = logger_for(func)
            with LogContext(operation=operation):
                logger.log(level, "%s started", operation)
                start = time.perf_counter()
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    elapsed = round((time.perf_counter() - start) * 1000, 1)
                    logger.error(
                        "%s failed: %s",
                        operation,
                        exc,
                        exc_info=True,
                        extra={"duration_ms": elapsed},
                    )
                    raise
                elapsed = round((time.perf_counter() - start) * 1000, 1)
                logger.log(
                    level, "%s finished", operation, extra={"duration_ms": elapsed}
                )
                return result

        return wrapper

    return decorator


def log_operation(
    operation: str, logger: logging.Logger | None = None
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Log start, end and duration of an application operation at INFO.

    Context set inside the wrapped call (``set_context``) is dropped when it returns.

    Example:
        >>> @log_operation("submit_assessment")
        ... def submit_assessment(session, project_id, week, scores):
        ...     pass
    """
    return _timed(operation, lambda func: logger or get_logger(func.__module__), logging.INFO)


def log_database_operation(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Same as ``log_operation`` for repository calls, at DEBUG on ``project_health.database``."""
    return _timed(f"db.{operation}", lambda func: get_logger("database"), logging.DEBUG)


class LoggingProfile(NamedTuple):
    level: str
    log_file: str | None
    structured: bool
    enable_console: bool


PROFILES: dict[str, LoggingProfile] = {
    "development": LoggingProfile("DEBUG", "./logs/development.log", False, True),
    "production": LoggingProfile("INFO", "./logs/production.log", True, False),
    "test": LoggingProfile("WARNING", None, False, False),
}


def auto_configure_logging() -> None:
    """Pick a profile from ``ENVIRONMENT`` (unknown names fall back to development)."""
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env == "testing":
        env = "test"
    setup_logging(**PROFILES.get(env, PROFILES["development"])._asdict())
    get_logger(__name__).debug("Logging configured for %s", env)


if not logging.getLogger(ROOT_LOGGER).handlers:
    auto_configure_logging()
