# offline_sync/crud/offline_table.py
"""
Offline table: local CRUD over one entity table that journals every change.

Each successful add, replace or remove writes the entity row and exactly one
queued operation in the same transaction.
"""
import logging
from typing import Generic, Iterable, List, Optional, Type, TypeVar

from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from offline_sync.core.clock import SequenceGenerator
from offline_sync.core.config import Settings
from offline_sync.core.exceptions import EntityExistsError, EntityNotFoundError, OfflineStoreError
from offline_sync.crud.operations_queue import OperationsQueue, PendingCounter
from offline_sync.database.engine import unit_of_work
from offline_sync.models.mixins import OfflineEntity
from offline_sync.models.operation import OperationKind
from offline_sync.schemas.operation import OperationResult

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=OfflineEntity)


class OfflineTable(Generic[E]):
    def __init__(
        self,
        session: AsyncSession,
        model: Type[E],
        table_name: Optional[str] = None,
        sequence: Optional[SequenceGenerator] = None,
        config: Optional[Settings] = None,
        pending: Optional[PendingCounter] = None,
    ):
        self.session = session
        self.model = model
        self.table_name = table_name or model.__tablename__
        self.queue = OperationsQueue(session, sequence=sequence, config=config, pending=pending)

    async def _load(self, item_id: str) -> Optional[E]:
        query = (
            select(self.model)
            .where(self.model.id == item_id)
            .execution_options(populate_existing=True)
        )
        return (await self.session.exec(query)).first()

    async def get(self, item_id: str) -> E:
        """Get an entity by id, raising EntityNotFoundError when missing."""
        entity = await self._load(item_id)
        if entity is None:
            raise EntityNotFoundError(self.table_name, item_id)
        return entity

    async def list(self) -> List[E]:
        """All entities, ordered by id."""
        query = select(self.model).order_by(self.model.id).execution_options(populate_existing=True)
        return list((await self.session.exec(query)).all())

    async def count(self) -> int:
        return (await self.session.exec(select(func.count(self.model.id)))).one()

    async def _apply(self, kind: OperationKind, item_id: str, entity: Optional[E] = None) -> OperationResult:
        # Taken before loading: the caller may hold the same identity-mapped
        # instance, which the load below resets to its persisted values.
        new_values = entity.model_dump(exclude={"id"}) if entity is not None else {}

        error: Optional[OfflineStoreError] = None

        # Rejections return through a normal commit of the (empty) transaction;
        # a rollback would expire entities handed out by earlier calls.
        async with unit_of_work(self.session):
            with self.session.no_autoflush:
                existing = await self._load(item_id)

            if kind == OperationKind.ADD and existing is not None:
                error = EntityExistsError(self.table_name, item_id)
            elif kind != OperationKind.ADD and existing is None:
                error = EntityNotFoundError(self.table_name, item_id)
            else:
                if kind == OperationKind.ADD:
                    snapshot = ""
                    self.session.add(entity)
                    value = entity
                elif kind == OperationKind.REPLACE:
                    snapshot = existing.model_dump_json()
                    for field, new_value in new_values.items():
                        setattr(existing, field, new_value)
                    self.session.add(existing)
                    value = existing
                else:
                    snapshot = existing.model_dump_json()
                    await self.session.delete(existing)
                    value = None

                version = new_values.get("version", getattr(existing, "version", 0)) or 0
                operation = await self.queue.stage_operation(
                    kind, self.table_name, item_id, serialized_item=snapshot, version=int(version)
                )

        if error is not None:
            logger.warning(f"{kind.value} on {self.table_name}/{item_id} rejected: {error}")
            return OperationResult.failure(item_id, error)

        self.queue.record_enqueued()
        return OperationResult.success(item_id, value=value, operation_id=operation.id)

    async def add_range(self, entities: Iterable[E]) -> List[OperationResult]:
        """Insert entities locally, queueing one Add per entity."""
        return [await self._apply(OperationKind.ADD, entity.id, entity) for entity in entities]

    async def replace_range(self, entities: Iterable[E]) -> List[OperationResult]:
        """Overwrite existing entities, queueing one Replace per entity."""
        return [await self._apply(OperationKind.REPLACE, entity.id, entity) for entity in entities]

    async def remove_range(self, item_ids: Iterable[str]) -> List[OperationResult]:
        """Delete entities by id, queueing one Delete per entity."""
        return [await self._apply(OperationKind.DELETE, item_id) for item_id in item_ids]

    async def add(self, entity: E) -> OperationResult:
        return (await self.add_range([entity]))[0]

    async def replace(self, entity: E) -> OperationResult:
        return (await self.replace_range([entity]))[0]

    async def remove(self, item_id: str) -> OperationResult:
        return (await self.remove_range([item_id]))[0]
