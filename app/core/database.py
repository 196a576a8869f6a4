# app/core/database.py
import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Base class for all models
Base = declarative_base()

# Largest primary key a 64-bit INTEGER column can hold
MAX_ROW_ID = 2**63 - 1


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with FK enforcement off; cascades depend on it
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for one application instance."""
    engine_kwargs = {
        "echo": echo,
        "future": True,
    }

    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.endswith("://"):
            # A single shared connection keeps the in-memory database alive
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs.update({
            "pool_size": 5,
            "max_overflow": 5,
            "pool_timeout": 30,       # Seconds to wait for a free connection
            "pool_pre_ping": True,    # Check connection before using
            "pool_recycle": 300,      # Recycle connections after 5 minutes
        })

    engine = create_async_engine(database_url, **engine_kwargs)

    if database_url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        logger.info("Configured SQLite engine with foreign key enforcement")

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )


async def create_db_and_tables(engine: AsyncEngine) -> None:
    # Import models so they register on Base.metadata
    from app.models import objective, transaction, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Dependency to get DB session with proper exception handling
async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    session_factory: async_sessionmaker = request.app.state.session_factory
    session = session_factory()
    try:
        yield session
    except Exception as e:
        logger.error(f"Database session error: {e!r}")
        await session.rollback()
        raise
    finally:
        await session.close()
        logger.debug("Database session closed")
