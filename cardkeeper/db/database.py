"""
Inventory database wiring.

One async engine per process. Each request gets its own session, and the
store writes made through it are committed together when the request ends.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cardkeeper.config import settings
from cardkeeper.models.db import Base
from cardkeeper.models.failure import PersistenceError

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Cards and containers are read back after commit when building responses
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for one inventory request.

    Every card or container write runs in its own savepoint. When one of
    them fails the handler sees a PersistenceError, and the writes that did
    go through are still committed so the stored ledgers match what the
    engine reports as persisted.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except PersistenceError as e:
            logger.warning("Committing partial inventory writes after: %s", e.message)
            await session.commit()
            raise
        except SQLAlchemyError:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create the card and container tables if they are missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
