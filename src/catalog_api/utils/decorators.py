"""Decorator utilities for cross-cutting concerns."""
import functools
import logging
import time
from typing import Any, Callable, TypeVar, cast

# Setup logging
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def log_execution_time(func: F) -> F:
    """Decorator to log how long a catalog operation took.

    Successful calls are logged at DEBUG, failures at WARNING before the
    exception is re-raised.

    Args:
        func: The function to decorate

    Returns:
        Decorated function that logs execution time
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(f"{func.__qualname__} failed after {duration_ms:.1f}ms: {e}")
            raise
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"{func.__qualname__} completed in {duration_ms:.1f}ms")
        return result
    return cast(F, wrapper)
