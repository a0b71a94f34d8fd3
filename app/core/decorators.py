import functools
import inspect
from typing import Callable
import logging

from app.core.exceptions import LeaderboardError

logger = logging.getLogger(__name__)

def leaderboard_operation(description: str):
    """Outermost request boundary for leaderboard operations.

    Typed leaderboard errors (validation, authorization) pass through unchanged.
    Anything else is logged and normalized to an INTERNAL error that carries the
    original message.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except LeaderboardError:
                raise
            except Exception as e:
                logger.error(f"Error in {func.__name__}: {e}", exc_info=True)
                raise LeaderboardError.internal(f"Failed to {description}", error=str(e)) from e

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except LeaderboardError:
                raise
            except Exception as e:
                logger.error(f"Error in {func.__name__}: {e}", exc_info=True)
                raise LeaderboardError.internal(f"Failed to {description}", error=str(e)) from e

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
