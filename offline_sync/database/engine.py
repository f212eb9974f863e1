from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import asyncio
import logging

from offline_sync.core.config import Settings, settings

logger = logging.getLogger(__name__)


def build_engine(config: Optional[Settings] = None, **kwargs) -> AsyncEngine:
    """Create the async engine backing the offline store."""
    config = config or settings
    logger.debug(f"Creating offline store engine for {config.database_url}")
    return create_async_engine(
        config.database_url,
        echo=config.SQL_ECHO,
        **kwargs
    )


def build_session_factory(engine: AsyncEngine) -> sessionmaker:
    # Snapshots are taken from rows after commit, so keep attributes loaded.
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_db_and_tables(engine: AsyncEngine) -> None:
    # Registers the operations_queue and delta_tokens tables on the metadata.
    import offline_sync.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Offline store tables created")


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Commit the enclosed writes as one transaction.

    Any error, including task cancellation, rolls the transaction back before
    it is re-raised, so a cancelled call never leaves a partial write behind.
    """
    try:
        yield session
        await session.commit()
    except (Exception, asyncio.CancelledError):
        await session.rollback()
        raise
