"""
Simple structured logging for confstore, backed by loguru.

Silence the package with ``loguru.logger.disable("confstore")``.
"""

import os
import time
from contextlib import contextmanager
from typing import Optional

from loguru import logger as loguru_logger


class AsyncLogger:
    """
    Component logger with flat format.

    Format: timestamp | level | component | message
    The optional file sink is enqueued, so the caller never blocks on disk.
    """

    # Single file sink shared by every instance
    _handler_id = None

    def __init__(self, component: str, debug_mode: bool = False):
        self.component = component
        self.debug_mode = debug_mode
        self._setup_file_handler()

    def _setup_file_handler(self):
        """
        Add the rotating file sink once, only when CONFSTORE_LOG_FILE is set.

        A library does not write log files on import by default.
        """
        log_file = os.getenv("CONFSTORE_LOG_FILE")
        if log_file and AsyncLogger._handler_id is None:
            AsyncLogger._handler_id = loguru_logger.add(
                log_file,
                format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[component]} | {message}",
                level="DEBUG" if self.debug_mode else "INFO",
                rotation="10 MB",
                enqueue=True,
            )

    def log(self, level: str, message: str, **context):
        loguru_logger.bind(component=self.component, **context).log(level, message)

    def debug(self, message: str, **context):
        """Log at DEBUG level."""
        self.log("DEBUG", message, **context)

    def info(self, message: str, **context):
        """Log at INFO level."""
        self.log("INFO", message, **context)

    def warning(self, message: str, **context):
        """Log at WARNING level."""
        self.log("WARNING", message, **context)

    def error(self, message: str, include_trace: Optional[bool] = None, **context):
        """
        Log at ERROR level with an optional stack trace.

        Args:
            message: Error message
            include_trace: Include the stack trace (None = follow debug_mode)
            **context: Extra context
        """
        should_include_trace = include_trace if include_trace is not None else self.debug_mode

        if should_include_trace:
            import traceback

            context["stack_trace"] = traceback.format_exc()

        self.log("ERROR", message, **context)


class PerformanceLogger:
    """
    Logger for operation timings.

    Records the duration of each measured block at DEBUG level.
    """

    def __init__(self):
        self.logger = AsyncLogger("performance")

    @contextmanager
    def measure(self, operation: str, **context):
        """
        Context manager that measures an operation.

        Usage:
        ```
        with perf_logger.measure("load", file=path):
            data = read(path)
        ```
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start
            self.logger.debug(
                "Operation completed", operation=operation, duration_ms=duration * 1000, **context
            )


def _get_debug_mode() -> bool:
    """Read debug mode from the environment."""
    return os.getenv("CONFSTORE_DEBUG", "false").lower() == "true"


logger = AsyncLogger("confstore", debug_mode=_get_debug_mode())
perf_logger = PerformanceLogger()
