"""
Database utilities for error handling
"""
import functools
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import StorageError

logger = logging.getLogger(__name__)

# Define a type variable for the return type of the decorated function
T = TypeVar('T')


def _find_session(args: tuple, kwargs: dict) -> Optional[AsyncSession]:
    db = kwargs.get("db")
    if isinstance(db, AsyncSession):
        return db
    for arg in args:
        if isinstance(arg, AsyncSession):
            return arg
    return None


def translate_storage_errors(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """
    Decorator that turns SQLAlchemy failures into StorageError.

    The session passed to the wrapped function is rolled back and the full
    error is logged here; callers only ever see the generic StorageError.
    Failed writes are never retried.
    """
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Database operation {func.__name__} failed: {e!r}")
            db = _find_session(args, kwargs)
            if db is not None:
                await db.rollback()
            raise StorageError() from e

    return cast(Callable[..., Awaitable[T]], wrapper)
