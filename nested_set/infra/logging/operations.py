"""Operation logging decorators and context managers.

Every structural tree change is logged once on completion (or failure) with
its duration and structured ``extra`` fields; repository reads can be wrapped
with ``log_db_operation``.

Example:
    from nested_set.infra.logging.operations import log_db_operation, operation_context

    class CategoryRepository(NestedSetRepository[Category]):
        @log_db_operation("roots")
        async def roots(self, session):
            ...

    async with operation_context("nested_set.move", node_id=7) as ctx:
        await move(...)
        ctx.set_result(width=4)
"""

from __future__ import annotations

import functools
import inspect
import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable


def log_operation[**P, R](
    operation_type: str,
    *,
    level: int = logging.DEBUG,
    include_timing: bool = True,
    error_level: int = logging.ERROR,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Generic async operation logging decorator.

    Logs operation exit (with duration) and errors. Skips all work when
    neither level is enabled.

    Args:
        operation_type: Operation category (e.g., "db.get", "nested_set.roots")
        level: Log level for success messages (default: DEBUG)
        include_timing: Whether to include execution duration
        error_level: Log level for errors (default: ERROR)

    Returns:
        Decorated coroutine function with automatic logging
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"log_operation expects a coroutine function, got {func!r}")

        logger = logging.getLogger(func.__module__)
        func_name = func.__name__

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            should_log = logger.isEnabledFor(level)
            should_log_errors = logger.isEnabledFor(error_level)

            if not should_log and not should_log_errors:
                return await func(*args, **kwargs)

            extra: dict[str, Any] = {"operation": operation_type, "function": func_name}
            start_time = time.perf_counter() if include_timing else 0.0

            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                if should_log_errors:
                    if include_timing:
                        extra["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
                    extra["success"] = False
                    extra["error_type"] = type(exc).__name__
                    extra["error"] = str(exc)
                    logger.log(error_level, f"{operation_type}.{func_name} failed", extra=extra)
                raise

            if should_log:
                if include_timing:
                    extra["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
                extra["success"] = True
                logger.log(level, f"{operation_type}.{func_name}", extra=extra)
            return result

        return wrapper

    return decorator


def log_db_operation[**P, R](
    operation: str,
    *,
    level: int = logging.DEBUG,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator for database repository operations.

    Args:
        operation: Short operation name (e.g., "roots", "get_tree")
        level: Log level (default: DEBUG)
    """
    return log_operation(f"db.{operation}", level=level)


class OperationContext:
    """Collects result data to log when an operation block completes."""

    __slots__ = ("_extra",)

    def __init__(self) -> None:
        self._extra: dict[str, Any] = {}

    def set_result(self, **kwargs: Any) -> None:
        """Add result data to be logged on completion."""
        self._extra.update(kwargs)

    @property
    def result(self) -> dict[str, Any]:
        return dict(self._extra)


@asynccontextmanager
async def operation_context(
    operation_name: str,
    *,
    logger: logging.Logger | None = None,
    level: int = logging.DEBUG,
    error_level: int = logging.WARNING,
    **context_data: Any,
) -> AsyncIterator[OperationContext]:
    """Async context manager for logging operation blocks.

    Args:
        operation_name: Name for the operation
        logger: Logger to use (default: module logger)
        level: Log level for success (default: DEBUG)
        error_level: Log level for errors (default: WARNING, callers decide
            whether a rejected mutation is an error)
        **context_data: Additional context to include in logs

    Yields:
        OperationContext for adding result data
    """
    log = logger or logging.getLogger(__name__)
    ctx = OperationContext()

    should_log = log.isEnabledFor(level)
    should_log_errors = log.isEnabledFor(error_level)

    if not should_log and not should_log_errors:
        yield ctx
        return

    start_time = time.perf_counter()
    extra: dict[str, Any] = {"operation": operation_name, **context_data}

    try:
        yield ctx
    except Exception as exc:
        if should_log_errors:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            log.log(
                error_level,
                f"{operation_name} failed: {exc}",
                extra={
                    **extra,
                    **ctx.result,
                    "duration_ms": duration_ms,
                    "success": False,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
        raise

    if should_log:
        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        log.log(
            level,
            f"{operation_name} completed",
            extra={**extra, **ctx.result, "duration_ms": duration_ms, "success": True},
        )


__all__ = [
    "OperationContext",
    "log_db_operation",
    "log_operation",
    "operation_context",
]
