# ABOUTME: Logger utilities with context binding and API call tracking decorators
# ABOUTME: Provides get_logger function and helpers for consistent structured logging

import functools
import time
import uuid
from collections.abc import Callable, Mapping
from contextvars import Token
from typing import Any, TypeVar

import structlog

# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., Any])


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance with automatic module detection.

    Args:
        name: Logger name, auto-detected from caller if None

    Returns:
        Configured structlog logger instance
    """
    if name is None:
        import inspect

        frame = inspect.currentframe()
        if frame and frame.f_back:
            # Get the module name of the caller
            name = frame.f_back.f_globals.get("__name__", "unknown")

    return structlog.get_logger(name or "mining_intel")


def generate_operation_id() -> str:
    """Generate a unique operation ID for tracking requests."""
    return str(uuid.uuid4())[:8]


def log_api_call(api_name: str, **context) -> Callable[[F], F]:
    """Decorator to log API calls with request/response details.

    Args:
        api_name: Name of the API being called
        **context: Additional context for the API call

    Returns:
        Decorated async function with API call logging
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            call_id = generate_operation_id()

            # First http(s) argument is the most useful thing to log
            url = None
            for arg in args:
                if isinstance(arg, str) and arg.startswith(("http://", "https://")):
                    url = arg
                    break

            bound_logger = logger.bind(api_name=api_name, call_id=call_id, url=url, **context)

            bound_logger.debug(f"API call to {api_name}")
            start_time = time.time()

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                bound_logger.warning(
                    f"API call to {api_name} failed",
                    duration_seconds=round(time.time() - start_time, 3),
                    error=str(e),
                    error_type=type(e).__name__,
                    success=False,
                )
                raise

            bound_logger.debug(
                f"API call to {api_name} succeeded",
                duration_seconds=round(time.time() - start_time, 3),
                success=True,
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator

class LogContext:
    """Bind context to a logger and to structlog's contextvars for the duration of a block.

    Contextvars make the context visible to every logger used inside the block,
    including provider calls, and asyncio tasks spawned there inherit a copy.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger, **context):
        self.logger = logger
        self.context = context
        self.bound_logger = None
        self._tokens: Mapping[str, Token[Any]] = {}

    def __enter__(self) -> structlog.stdlib.BoundLogger:
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        self.bound_logger = self.logger.bind(**self.context)
        return self.bound_logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None and self.bound_logger is not None:
            self.bound_logger.error("Context operation failed", error=str(exc_val), error_type=exc_type.__name__)
        structlog.contextvars.reset_contextvars(**self._tokens)


def with_company_context(run_id: int | None, company_name: str) -> LogContext:
    """Create a logging context for one company's pass through the pipeline.

    Args:
        run_id: Pipeline run ID, None for debug runs
        company_name: Company being processed

    Returns:
        LogContext manager with company context
    """
    logger = get_logger("mining_intel.core.processor")
    return LogContext(logger, run_id=run_id, company=company_name)


def with_pipeline_context(pipeline_name: str, **context) -> LogContext:
    """Bind a pipeline name and a fresh operation ID, plus any extra context."""
    return LogContext(get_logger(), pipeline=pipeline_name, operation_id=generate_operation_id(), **context)
