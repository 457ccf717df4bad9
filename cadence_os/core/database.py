"""Database engine and session management.

Each request gets one session that commits when the handler returns and
rolls back on any exception. Concurrent reads use their own sessions from
the factory, never the request session.
"""

import logging
import ssl
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

POOLED_HOST_MARKERS = ("supabase", "neon", "pooler")


def async_url(url: str) -> str:
    """postgresql:// URLs use the asyncpg driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def create_engine_for(url: str) -> AsyncEngine:
    """Build an engine with pool and SSL settings suited to the URL."""
    url = async_url(url)
    kwargs: dict = {"echo": settings.database_echo, "pool_pre_ping": True}
    connect_args: dict = {}

    if url.startswith("postgresql+asyncpg://"):
        kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_recycle=300,
            pool_timeout=30,
        )
        # Hosted Postgres sits behind pgbouncer: SSL on, prepared statements off
        if settings.environment == "production" or any(m in url for m in POOLED_HOST_MARKERS):
            ssl_context = ssl.create_default_context()
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
            connect_args.update(
                ssl=ssl_context,
                prepared_statement_cache_size=0,
                statement_cache_size=0,
            )
            logger.info("Using SSL database connection with pgbouncer compatibility")

    return create_async_engine(url, connect_args=connect_args, **kwargs)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = create_engine_for(settings.database_url)
async_session_factory = create_session_factory(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commit on success, roll back on any error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Request failed, transaction rolled back: {e}")
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency that exposes the session factory for concurrent reads."""
    return async_session_factory


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """Same transaction rules as `get_session`, for code outside a request."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables. Production schemas are managed by migrations."""
    from ..models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
