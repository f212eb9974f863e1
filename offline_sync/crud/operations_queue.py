# offline_sync/crud/operations_queue.py
"""
Operations queue: the ordered journal of local mutations awaiting the remote service.

The queue only persists intent. Pushing operations to the remote service,
retrying failures and backing off are the job of the synchronization process
that drives ``get_next`` and ``update``.
"""
import logging
from typing import AsyncIterator, Optional

from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from offline_sync.core.clock import SequenceGenerator
from offline_sync.core.config import Settings, settings
from offline_sync.core.exceptions import InvalidStateTransitionError, OperationNotFoundError
from offline_sync.database.engine import unit_of_work
from offline_sync.models.operation import (
    OperationKind,
    OperationState,
    OperationsQueueEntry,
    is_valid_transition,
)
from offline_sync.schemas.operation import Operation

logger = logging.getLogger(__name__)


class PendingCounter:
    """
    Fast-path count of operations that are not Completed.

    A store shares one counter between its queues and tables, so a change
    made through any of them is seen by all. The value is ``None`` (unknown)
    until a full count has been taken.
    """

    def __init__(self):
        self.value: Optional[int] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def adjust(self, delta: int) -> None:
        self._generation += 1
        if self.value is not None:
            self.value = max(0, self.value + delta)

    def reset(self, value: int, generation: int) -> None:
        """
        Store a full count taken while the counter was at ``generation``.

        A change that landed while the count was running may or may not be
        included in it, so the value becomes unknown instead.
        """
        self.value = value if generation == self._generation else None


class OperationsQueue:
    """
    Queue of pending operations backed by the ``operations_queue`` table.

    Every read goes to the database; nothing is served from the session's
    identity map, so writes made through other sessions are always visible.
    """

    def __init__(
        self,
        session: AsyncSession,
        sequence: Optional[SequenceGenerator] = None,
        config: Optional[Settings] = None,
        pending: Optional[PendingCounter] = None,
    ):
        """
        Args:
            session: Async session owned by the caller
            sequence: Shared sequence generator (one per store)
            config: Settings override
            pending: Shared fast-path pending counter (one per store)
        """
        config = config or settings
        self.session = session
        self.sequence = sequence or SequenceGenerator()
        self.pending = pending or PendingCounter()
        self.page_size = max(1, config.QUEUE_PAGE_SIZE)
        self.strict_transitions = config.STRICT_STATE_TRANSITIONS

    @property
    def pending_operations(self) -> Optional[int]:
        """
        Fast-path pending count, or ``None`` when unknown.

        Known once ``count_pending`` has run on any component sharing the
        counter; from then on it follows the enqueues and Completed
        transitions made through those components. Writes made by anything
        else (another store on the same database) are not seen, so use
        ``count_pending`` for the persisted number.
        """
        return self.pending.value

    def record_enqueued(self, count: int = 1) -> None:
        """Account for operations committed by a caller that staged them."""
        self.pending.adjust(count)

    async def count_pending(self) -> int:
        """Count operations that are not Completed."""
        generation = self.pending.generation
        query = select(func.count(OperationsQueueEntry.id)).where(
            OperationsQueueEntry.state != OperationState.COMPLETED
        )
        count = (await self.session.exec(query)).one()
        self.pending.reset(count, generation)
        return count

    async def _scan(self, pending_only: bool) -> AsyncIterator[Operation]:
        # Keyset pagination on sequence keeps relative order intact even when
        # rows are inserted while the caller is still iterating.
        last_sequence: Optional[int] = None
        while True:
            query = select(OperationsQueueEntry)
            if pending_only:
                query = query.where(OperationsQueueEntry.state != OperationState.COMPLETED)
            if last_sequence is not None:
                query = query.where(OperationsQueueEntry.sequence > last_sequence)
            query = (
                query.order_by(OperationsQueueEntry.sequence)
                .limit(self.page_size)
                .execution_options(populate_existing=True)
            )

            page = (await self.session.exec(query)).all()
            for entry in page:
                yield Operation.model_validate(entry)

            if len(page) < self.page_size:
                return
            last_sequence = page[-1].sequence

    def iterate_pending(self) -> AsyncIterator[Operation]:
        """Iterate operations that are not Completed, in sequence order."""
        return self._scan(pending_only=True)

    def iterate_all_ordered(self) -> AsyncIterator[Operation]:
        """Iterate every operation regardless of state, in sequence order."""
        return self._scan(pending_only=False)

    async def get_next(self) -> Optional[Operation]:
        """
        Peek at the oldest operation that is not Completed.

        Attempted and Failed operations stay candidates, so a failed operation
        keeps the head of the queue until the caller completes it. Nothing is
        marked as consumed.
        """
        query = (
            select(OperationsQueueEntry)
            .where(OperationsQueueEntry.state != OperationState.COMPLETED)
            .order_by(OperationsQueueEntry.sequence)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        entry = (await self.session.exec(query)).first()
        if entry is None:
            return None
        return Operation.model_validate(entry)

    async def _load(self, operation_id: str) -> Optional[OperationsQueueEntry]:
        query = (
            select(OperationsQueueEntry)
            .where(OperationsQueueEntry.id == operation_id)
            .execution_options(populate_existing=True)
        )
        return (await self.session.exec(query)).first()

    async def get(self, operation_id: str) -> Operation:
        """
        Look up a single operation.

        Raises:
            OperationNotFoundError: If no operation has this id
        """
        entry = await self._load(operation_id)
        if entry is None:
            raise OperationNotFoundError(operation_id)
        return Operation.model_validate(entry)

    async def _next_sequence(self) -> int:
        # Read inside the write transaction: other generators on the same
        # database may have appended since this one last looked.
        persisted_max = (
            await self.session.exec(select(func.max(OperationsQueueEntry.sequence)))
        ).one()
        self.sequence.seed(persisted_max)
        return self.sequence.next()

    async def stage_operation(
        self,
        kind: OperationKind,
        table_name: str,
        item_id: str,
        serialized_item: str = "",
        version: int = 0,
    ) -> OperationsQueueEntry:
        """
        Add a new Pending operation to the session without committing.

        Used by callers that write the entity change and the operation in the
        same transaction. They call ``record_enqueued`` once committed.
        """
        entry = OperationsQueueEntry(
            sequence=await self._next_sequence(),
            kind=kind,
            state=OperationState.PENDING,
            item_id=item_id,
            table_name=table_name,
            serialized_item=serialized_item,
            version=version,
        )
        self.session.add(entry)
        await self.session.flush()
        logger.debug(f"Staged {kind.value} operation {entry.id} for {table_name}/{item_id}")
        return entry

    async def enqueue(
        self,
        kind: OperationKind,
        table_name: str,
        item_id: str,
        serialized_item: str = "",
        version: int = 0,
    ) -> Operation:
        """Append a new Pending operation to the queue."""
        async with unit_of_work(self.session):
            entry = await self.stage_operation(kind, table_name, item_id, serialized_item, version)
        self.record_enqueued()
        return Operation.model_validate(entry)

    async def update(self, operation: Operation) -> Operation:
        """
        Persist a new state (and version) for an existing operation.

        Only ``state`` and ``version`` are taken from ``operation``; the stored
        kind, item, table, snapshot and sequence always win. Concurrent updates
        of the same id are last-writer-wins.

        Returns:
            The operation as persisted after the update

        Raises:
            OperationNotFoundError: If no operation has ``operation.id``
            InvalidStateTransitionError: If strict transitions are enabled and
                the requested state is not reachable from the stored one
        """
        requested = OperationState(operation.state)

        async with unit_of_work(self.session):
            entry = await self._load(operation.id)
            if entry is None:
                logger.warning(f"Update rejected, operation {operation.id} not found")
                raise OperationNotFoundError(operation.id)

            previous = entry.state
            if self.strict_transitions and not is_valid_transition(previous, requested):
                logger.warning(
                    f"Update rejected, operation {entry.id} cannot move "
                    f"from {previous.value} to {requested.value}"
                )
                raise InvalidStateTransitionError(entry.id, previous, requested)

            entry.state = requested
            entry.version = operation.version
            self.session.add(entry)

        if previous != OperationState.COMPLETED and requested == OperationState.COMPLETED:
            self.pending.adjust(-1)
        elif previous == OperationState.COMPLETED and requested != OperationState.COMPLETED:
            self.pending.adjust(1)

        logger.debug(f"Operation {entry.id} moved from {previous.value} to {requested.value}")
        return Operation.model_validate(entry)
