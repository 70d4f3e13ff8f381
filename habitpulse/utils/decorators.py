import asyncio
import functools
import logging
from typing import Tuple, Type

logger = logging.getLogger(__name__)


def retry_on_exception(retries: int = 2, delay: float = 1.0,
                       retry_on: Tuple[Type[BaseException], ...] = (Exception,)):
    """Retry an async call up to `retries` extra times with a fixed delay.

    Only exceptions listed in `retry_on` are retried; anything else, and the
    last retryable failure, propagates unchanged.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    attempt += 1
                    if attempt > retries:
                        raise
                    logger.warning(f"🔄 Attempt {attempt} of {func.__name__} failed: {e}")
                    if delay > 0:
                        await asyncio.sleep(delay)
        return wrapper
    return decorator
