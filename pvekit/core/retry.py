"""Exponential-backoff retry for calls that cross the network."""
import functools
import time
from typing import Iterator, Tuple, Type

from pvekit.core.logger import get_logger

logger = get_logger(__name__)


def backoff_delays(max_attempts: int, delay: float, backoff: float) -> Iterator[float]:
    """Waits between attempts: delay, delay*backoff, ... (max_attempts - 1 values)."""
    for attempt in range(max_attempts - 1):
        yield delay * backoff ** attempt


def retry(
    max_attempts: int = 3,
    delay: float = 2.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
):
    """Retry the wrapped call when it raises one of `exceptions`.

    The last failure is re-raised unchanged.

    Example:
        @retry(max_attempts=3, delay=1, exceptions=(requests.ConnectionError,))
        def authenticate(self):
            ...
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt, wait in enumerate(backoff_delays(max_attempts, delay, backoff), start=1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    logger.warning(
                        f"{func.__name__} failed ({attempt}/{max_attempts}): {e}; "
                        f"retrying in {wait:.1f}s"
                    )
                    time.sleep(wait)

            try:
                return func(*args, **kwargs)
            except exceptions as e:
                logger.error(f"{func.__name__} failed after {max_attempts} attempts: {e}")
                raise

        return wrapper

    return decorator
