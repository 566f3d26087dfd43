"""Async SQLAlchemy database engine and session management.

Provides the async database layer with:
- Lazy engine creation from settings (PostgreSQL in production, SQLite locally)
- FastAPI dependency injection via get_session()
- Automatic session lifecycle (commit on success, rollback on error)
- Translation of connectivity failures into TransientStorageError
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import get_settings
from core.errors import TransientStorageError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Engine & session factory
# ---------------------------------------------------------------------------

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Create the engine on first use."""
    global _engine, _session_factory

    if _engine is None:
        settings = get_settings()
        options: dict = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
        if not settings.DATABASE_URL.startswith("sqlite"):
            options["pool_size"] = settings.DB_POOL_SIZE
            options["max_overflow"] = settings.DB_MAX_OVERFLOW

        _engine = create_async_engine(settings.DATABASE_URL, **options)
        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        get_engine()
    return _session_factory


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

@asynccontextmanager
async def storage_errors(operation: str) -> AsyncIterator[None]:
    """Re-raise connectivity failures as TransientStorageError.

    Constraint violations and programming errors propagate unchanged.
    """
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.error("Storage unavailable during %s: %s", operation, exc)
        raise TransientStorageError(f"Storage unavailable during {operation}") from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            logger.error("Connection lost during %s: %s", operation, exc)
            raise TransientStorageError(f"Storage unavailable during {operation}") from exc
        raise


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session with automatic commit/rollback.

    Usage in FastAPI routes::

        @router.get("/items")
        async def list_items(session: AsyncSession = Depends(get_session)):
            result = await session.execute(select(Item))
            return result.scalars().all()
    """
    async with get_session_factory()() as session:
        try:
            yield session
            async with storage_errors("commit"):
                await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager variant for non-FastAPI code (scripts, tests, etc.)."""
    async with get_session_factory()() as session:
        try:
            yield session
            async with storage_errors("commit"):
                await session.commit()
        except Exception:
            await session.rollback()
            raise


# ---------------------------------------------------------------------------
# Lifecycle hooks
# ---------------------------------------------------------------------------

async def init_db() -> None:
    """Create tables from models (dev/test only; use migrations in production)."""
    from core.models.base import Base
    import verticals.storefront.models.db_models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the connection pool on shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
