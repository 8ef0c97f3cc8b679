"""Decorator utilities for cross-cutting concerns of the deploy tooling."""
import functools
import logging
import time
from typing import Any, Callable, Optional, TypeVar, cast

# Setup logging
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def log_execution_time(func: Optional[F] = None, *, label: Optional[str] = None):
    """Decorator to log how long an external command wrapper took.

    Can be used bare (``@log_execution_time``) or with a label
    (``@log_execution_time(label="kubectl apply")``).

    Args:
        func: The function to decorate
        label: Name used in the log line, defaults to the function name

    Returns:
        Decorated function that logs execution time
    """
    def decorator(inner: F) -> F:
        name = label or inner.__name__

        @functools.wraps(inner)
        def wrapper(*args, **kwargs):
            start_time = time.monotonic()
            try:
                result = inner(*args, **kwargs)
            except Exception as e:
                duration = time.monotonic() - start_time
                logger.error(f"{name} failed after {duration:.2f}s: {str(e)}")
                raise
            duration = time.monotonic() - start_time
            logger.info(f"{name} completed in {duration:.2f}s")
            return result
        return cast(F, wrapper)

    if func is not None:
        return decorator(func)
    return decorator
