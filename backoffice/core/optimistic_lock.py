"""
Back Office — Optimistic locking retry decorator

Writes guarded by a version column raise StaleDataError when another
transaction committed first. The decorator re-runs the whole read-modify-write
with exponential backoff + jitter.
"""
import asyncio
import functools
import logging
import random

from backoffice.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class StaleDataError(Exception):
    """The version column changed between our read and our update."""


def with_optimistic_retry(max_retries: int | None = None):
    """
    Decorator for async functions that perform optimistic-lock DB writes.

    Usage:
        @with_optimistic_retry()
        async def accrue(db, ...):
            ...
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            _max = max_retries or settings.OPT_LOCK_MAX_RETRIES
            for attempt in range(1, _max + 1):
                try:
                    return await func(*args, **kwargs)
                except StaleDataError:
                    if attempt == _max:
                        logger.error(
                            "Optimistic lock conflict unresolved after %d retries for %s",
                            _max, func.__name__,
                        )
                        raise
                    base_delay = settings.OPT_LOCK_BASE_DELAY_MS / 1000.0
                    max_delay = settings.OPT_LOCK_MAX_DELAY_MS / 1000.0
                    jitter = random.uniform(0, settings.OPT_LOCK_JITTER_MS / 1000.0)
                    delay = min(base_delay * (2 ** attempt), max_delay) + jitter
                    logger.warning(
                        "StaleDataError on attempt %d/%d, retrying %s in %.3fs",
                        attempt, _max, func.__name__, delay,
                    )
                    await asyncio.sleep(delay)
        return wrapper
    return decorator
