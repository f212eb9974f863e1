"""
Offline store: entry point that wires the queue, token store and tables to one database.
"""

import logging
from typing import List, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel.ext.asyncio.session import AsyncSession

from offline_sync.core.clock import Clock, SequenceGenerator
from offline_sync.core.config import Settings, settings
from offline_sync.crud.delta_token_store import DeltaTokenStore
from offline_sync.crud.offline_table import OfflineTable
from offline_sync.crud.operations_queue import OperationsQueue, PendingCounter
from offline_sync.database.engine import build_engine, build_session_factory, create_db_and_tables
from offline_sync.models.mixins import OfflineEntity

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=OfflineEntity)


class OfflineStore:
    """
    Owns the engine and sessions for one local database.

    Every component handed out gets its own session; they all share one
    sequence generator so operations created through any of them are totally
    ordered, and one pending counter so the fast-path count stays in step.

    Usage:
        async with OfflineStore() as store:
            await store.create_tables()
            todos = store.get_offline_table(TodoItem)
            await todos.add(TodoItem(title="buy milk"))
            next_op = await store.get_operations_queue().get_next()
    """

    def __init__(
        self,
        engine: Optional[AsyncEngine] = None,
        config: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            engine: Existing async engine; created from settings when omitted
            config: Settings override
            clock: Clock used to stamp new operations
        """
        self.config = config or settings
        self._owns_engine = engine is None
        self.engine = engine or build_engine(self.config)
        self.session_factory = build_session_factory(self.engine)
        self.sequence = SequenceGenerator(clock)
        self.pending = PendingCounter()
        self._sessions: List[AsyncSession] = []

    def _new_session(self) -> AsyncSession:
        session = self.session_factory()
        self._sessions.append(session)
        return session

    async def create_tables(self) -> None:
        """Create the store tables (and any registered entity tables) if missing."""
        await create_db_and_tables(self.engine)

    def get_operations_queue(self) -> OperationsQueue:
        return OperationsQueue(
            self._new_session(),
            sequence=self.sequence,
            config=self.config,
            pending=self.pending,
        )

    def get_delta_token_store(self) -> DeltaTokenStore:
        return DeltaTokenStore(self._new_session())

    def get_offline_table(self, model: Type[E], table_name: Optional[str] = None) -> OfflineTable[E]:
        """
        Get an offline table for an entity model.

        Args:
            model: SQLModel table class deriving from OfflineEntity
            table_name: Logical table name recorded on operations; defaults
                to the model's ``__tablename__``
        """
        if not hasattr(model, "__table__"):
            raise TypeError(f"{model.__name__} is not a SQLModel table (declare it with table=True)")
        return OfflineTable(
            self._new_session(),
            model,
            table_name=table_name,
            sequence=self.sequence,
            config=self.config,
            pending=self.pending,
        )

    async def close(self) -> None:
        """Close every session handed out, and the engine if this store created it."""
        for session in self._sessions:
            await session.close()
        self._sessions.clear()

        if self._owns_engine:
            await self.engine.dispose()
        logger.debug("Offline store closed")

    async def __aenter__(self) -> "OfflineStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
