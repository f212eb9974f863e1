"""
Operations queue model.

Each row records one local mutation (add, delete or replace of an entity)
that still has to be confirmed by the remote table service. Rows are replayed
in ``sequence`` order by the synchronization process.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet

from sqlalchemy import BigInteger, Column, Text
from sqlmodel import Field, SQLModel

from offline_sync.core.timestamps import from_file_time


class OperationKind(str, Enum):
    """Kinds of queued mutations."""
    UNKNOWN = "unknown"
    ADD = "add"
    DELETE = "delete"
    REPLACE = "replace"


class OperationState(str, Enum):
    """Lifecycle of a queued operation."""
    PENDING = "pending"
    ATTEMPTED = "attempted"
    COMPLETED = "completed"
    FAILED = "failed"


# Forward-only state machine; Completed is terminal and nothing re-enters Pending.
STATE_TRANSITIONS: Dict[OperationState, FrozenSet[OperationState]] = {
    OperationState.PENDING: frozenset({OperationState.ATTEMPTED}),
    OperationState.ATTEMPTED: frozenset({OperationState.COMPLETED, OperationState.FAILED}),
    OperationState.FAILED: frozenset({OperationState.ATTEMPTED}),
    OperationState.COMPLETED: frozenset(),
}


def is_valid_transition(current: OperationState, requested: OperationState) -> bool:
    """Whether ``current -> requested`` is allowed. Re-writing the same state is allowed."""
    if current == requested:
        return True
    return requested in STATE_TRANSITIONS[current]


def new_operation_id() -> str:
    return str(uuid.uuid4())


class OperationsQueueEntry(SQLModel, table=True):
    """
    Persisted operations queue record.

    Attributes:
        id: Canonical UUID string, the only key used for lookup and update
        sequence: Creation instant in file-time ticks, strictly increasing
        kind: Add, Delete, Replace or Unknown; never changes
        state: Current lifecycle state; the only field the sync process moves
        item_id: Id of the affected entity row
        table_name: Logical table of the affected entity
        serialized_item: JSON snapshot of the entity before Delete/Replace
        version: Optimistic-concurrency stamp exchanged with the remote service
    """
    __tablename__ = "operations_queue"

    id: str = Field(
        default_factory=new_operation_id,
        primary_key=True,
        max_length=36,
        description="Globally unique operation id"
    )

    sequence: int = Field(
        sa_column=Column(BigInteger, nullable=False, unique=True, index=True),
        description="Replay order (file-time ticks of creation)"
    )

    kind: OperationKind = Field(default=OperationKind.UNKNOWN, description="Kind of mutation")
    state: OperationState = Field(
        default=OperationState.PENDING,
        index=True,
        description="Current lifecycle state"
    )

    item_id: str = Field(default="", max_length=255, description="Affected entity id")
    table_name: str = Field(default="", max_length=255, description="Affected logical table")

    serialized_item: str = Field(
        default="",
        sa_column=Column(Text, nullable=False, default=""),
        description="Entity snapshot for Delete/Replace"
    )

    version: int = Field(
        default=0,
        sa_column=Column(BigInteger, nullable=False, default=0),
        description="Optimistic-concurrency stamp"
    )

    @property
    def created_at(self) -> datetime:
        return from_file_time(self.sequence)
