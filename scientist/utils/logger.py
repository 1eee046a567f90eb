"""
Structured logging utility for the experiment engine.

Provides JSON-formatted logging with bounded value summaries, context
injection, and operation timing for both synchronous and asynchronous
callables.
"""

import functools
import inspect
import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_SUMMARY_LENGTH = 200


def summarize_value(value: Any, max_length: int = DEFAULT_SUMMARY_LENGTH) -> str:
    """
    Produce a bounded ``repr`` of an observed value for log output.

    Behavior values can be arbitrarily large (query results, rendered pages),
    so they never reach a log line untruncated.

    Args:
        value: Any observed value
        max_length: Maximum length of the returned string

    Returns:
        ``repr(value)``, truncated with a trailing marker when too long

    Example:
        >>> summarize_value("abc")
        "'abc'"
        >>> summarize_value("x" * 500, max_length=10)
        "'xxxxxx...(502 chars)"
    """
    try:
        text = repr(value)
    except Exception as e:  # noqa: BLE001
        return f"<unrepresentable {type(value).__name__}: {e}>"

    if len(text) <= max_length:
        return text

    suffix = f"...({len(text)} chars)"
    keep = max(max_length - len(suffix), 0)
    return f"{text[:keep]}{suffix}"


def _resolve_level() -> int:
    """Read the log level from SCIENTIST_LOG_LEVEL, falling back to WARNING."""
    level_name = os.getenv("SCIENTIST_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.WARNING


class StructuredLogger:
    """
    JSON-formatted logger with context injection and operation timing.

    All log output is a single JSON object per line so results can be
    shipped to log aggregation unchanged.
    """

    def __init__(self, name: str):
        """
        Initialize structured logger.

        Args:
            name: Logger name (typically __name__ from calling module)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(_resolve_level())

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def _format_log(
        self,
        level: str,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> str:
        """
        Format log entry as JSON.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR)
            message: Human-readable message
            operation: Operation name (e.g., "run", "publish")
            context: Context dict with experiment, behavior, etc.
            duration_ms: Operation duration in milliseconds
            error: Error message if applicable

        Returns:
            JSON-formatted log string
        """
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "message": message,
        }

        if operation:
            log_entry["operation"] = operation

        if context:
            log_entry["context"] = context

        if duration_ms is not None:
            log_entry["duration_ms"] = round(duration_ms, 2)

        if error:
            log_entry["error"] = error

        return json.dumps(log_entry, ensure_ascii=False, default=str)

    def debug(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Log debug message."""
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(self._format_log("DEBUG", message, operation, context))

    def info(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
    ):
        """Log info message."""
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(self._format_log("INFO", message, operation, context, duration_ms))

    def warning(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ):
        """Log warning message."""
        self.logger.warning(
            self._format_log("WARNING", message, operation, context, error=error)
        )

    def error(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        duration_ms: Optional[float] = None,
    ):
        """Log error message."""
        self.logger.error(
            self._format_log("ERROR", message, operation, context, duration_ms, error)
        )


def _operation_context(func, args) -> Dict[str, Any]:
    context: Dict[str, Any] = {"function": func.__qualname__}
    # Bound methods on experiments carry a name worth tagging
    owner_name = getattr(args[0], "name", None) if args else None
    if isinstance(owner_name, str):
        context["experiment"] = owner_name
    return context


def log_operation(operation_name: str):
    """
    Decorator to log operation start, duration, and completion.

    Works for plain functions and coroutine functions. Failures are logged
    and re-raised unchanged.

    Usage:
        @log_operation("publish")
        async def publish(self, result):
            ...
    """

    def decorator(func):
        logger = StructuredLogger(func.__module__)

        def _completed(context, start_time):
            logger.info(
                f"Completed {operation_name}",
                operation=operation_name,
                context=context,
                duration_ms=(time.perf_counter() - start_time) * 1000,
            )

        def _failed(context, start_time, exc):
            logger.error(
                f"Failed {operation_name}",
                operation=operation_name,
                context=context,
                error=f"{type(exc).__name__}: {exc}",
                duration_ms=(time.perf_counter() - start_time) * 1000,
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                context = _operation_context(func, args)
                logger.debug(f"Starting {operation_name}", operation=operation_name, context=context)
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _failed(context, start_time, e)
                    raise
                _completed(context, start_time)
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context = _operation_context(func, args)
            logger.debug(f"Starting {operation_name}", operation=operation_name, context=context)
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _failed(context, start_time, e)
                raise
            _completed(context, start_time)
            return result

        return wrapper

    return decorator


def get_logger(name: str) -> StructuredLogger:
    """
    Factory function to get a structured logger instance.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)
