"""
Database configuration.

Async SQLAlchemy engine and session factory shared by the API and jobs.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config.settings import settings


def create_engine(database_url: str | None = None, **kwargs) -> AsyncEngine:
    """
    Create async engine.

    Args:
        database_url: Database URL (defaults to settings.database_url)
        **kwargs: Extra engine options

    Returns:
        AsyncEngine
    """
    url = database_url or settings.database_url
    options = {"echo": settings.database_echo}
    if url.startswith("postgresql") and "poolclass" not in kwargs:
        options.update(pool_size=10, max_overflow=20, pool_pre_ping=True)
    options.update(kwargs)
    return create_async_engine(url, **options)


def create_session_maker(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """
    Create session maker bound to engine.

    Args:
        engine: Async engine

    Returns:
        Session factory
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async_engine = create_engine()
async_session_maker = create_session_maker(async_engine)
