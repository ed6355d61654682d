"""Retry logic for add-on connections using tenacity."""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

F = TypeVar("F", bound=Callable[..., Any])


def with_connect_retry(
    service_name: str,
    max_attempts: int = 10,
    exceptions: tuple[type[BaseException], ...] = (ConnectionError, TimeoutError, OSError),
    step: float = 0.1,
    max_wait: float = 3.0,
) -> Callable[[F], F]:
    """Decorator to retry an async connection attempt.

    Waits grow by ``step`` seconds per attempt, capped at ``max_wait``.
    The last error is re-raised once ``max_attempts`` is reached.

    Args:
        service_name: Name of the add-on for log messages
        max_attempts: Maximum number of connection attempts
        exceptions: Exception types that trigger another attempt
        step: Wait increment between attempts, in seconds
        max_wait: Upper bound for a single wait, in seconds

    Returns:
        Decorated function with retry logic

    """

    def decorator(func: F) -> F:
        @retry(
            retry=retry_if_exception_type(exceptions),
            stop=stop_after_attempt(max_attempts),
            wait=wait_incrementing(start=step, increment=step, max=max_wait),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                f"{service_name} connection attempt {retry_state.attempt_number} failed: "
                f"{retry_state.outcome.exception() if retry_state.outcome else 'Unknown error'}",
            ),
        )
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
