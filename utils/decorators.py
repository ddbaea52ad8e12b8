import functools
import logging
import asyncio

logger = logging.getLogger(__name__)


def retry_on_exception(retries=3, delay=2, exceptions=(Exception,)):
    """Повторяет корутину при перечисленных исключениях, последнее пробрасывается"""
    attempts = max(1, retries)

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    logger.warning(f"{func.__name__}: attempt {attempt}/{attempts} failed: {e}")
                    if attempt >= attempts:
                        raise
                    await asyncio.sleep(delay)
        return wrapper
    return decorator
