"""
Database session management.

WHY: Async database sessions match the async services of the client portal.
Every public workflow operation runs inside exactly one session so that its
reads and predicate updates commit or roll back as a unit.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from client_portal.core.config import settings


# Create async engine
# pool_pre_ping recycles stale connections.
engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

# Create session factory
# expire_on_commit=False keeps returned rows readable after commit.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@asynccontextmanager
async def transaction(
    session_factory: Optional[async_sessionmaker] = None,
) -> AsyncIterator[AsyncSession]:
    """
    Open a session scoped to one atomic unit of work.

    WHAT: Commits when the block finishes cleanly and rolls back on any
    exception. Usage: `async with transaction(factory) as session:`.

    Args:
        session_factory: Session factory to use (defaults to AsyncSessionLocal)

    Yields:
        AsyncSession: Session whose work is committed on exit
    """
    factory = session_factory or AsyncSessionLocal
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
