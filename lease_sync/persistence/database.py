"""Database connection and session management."""

from collections.abc import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from lease_sync.domain.errors import ConfigurationError
from lease_sync.settings import get_async_database_url, settings

# Base class for models
Base = declarative_base()

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_database_url() -> str:
    """Async database URL with DATABASE_PASSWORD applied when set."""
    if not settings.database_url:
        raise ConfigurationError(["DATABASE_URL"])
    url = make_url(get_async_database_url(settings.database_url))
    if settings.database_password:
        url = url.set(password=settings.database_password)
    return url.render_as_string(hide_password=False)


def get_engine() -> AsyncEngine:
    """Create the async engine on first use."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(build_database_url(), echo=False, pool_pre_ping=True)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency for getting database session."""
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()
