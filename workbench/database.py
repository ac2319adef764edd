"""Database configuration with async SQLAlchemy and connection pooling."""
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from workbench.config import settings
from workbench.logging_config import get_logger

logger = get_logger(__name__)

DATABASE_URL = settings.database_url
IS_SQLITE = settings.is_sqlite


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with settings appropriate for the backend."""
    if url.startswith("sqlite"):
        # SQLite: use StaticPool (single connection)
        engine = create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        # Cascading deletes of assignments rely on foreign key enforcement
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # PostgreSQL: use QueuePool with proper connection pooling
    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_pre_ping=True,
    )


engine: AsyncEngine = create_engine_for_url(DATABASE_URL, echo=settings.database_echo)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db_engine() -> None:
    """
    Initialize the database engine.

    For SQLite: creates the database directory and sets WAL pragmas.
    For PostgreSQL: verifies connection.
    """
    if IS_SQLITE:
        database_path = DATABASE_URL.replace("sqlite+aiosqlite:///", "")
        db_dir = os.path.dirname(database_path)
        if db_dir and database_path != ":memory:":
            os.makedirs(db_dir, exist_ok=True)

        async with engine.begin() as conn:
            await conn.execute(text("PRAGMA journal_mode=WAL"))
            await conn.execute(text("PRAGMA busy_timeout=5000"))
    else:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Connected to PostgreSQL")


async def close_db_engine() -> None:
    """Close the database engine and all connections."""
    await engine.dispose()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async session.

    Services commit their own units of work; anything left pending when the
    request finishes is committed here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for sessions used outside the request cycle."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
