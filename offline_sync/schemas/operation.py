"""Read models handed out by the operations queue and offline tables."""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Generic, Optional, TypeVar

from offline_sync.core.timestamps import from_file_time
from offline_sync.models.operation import OperationKind, OperationState

T = TypeVar('T')


class Operation(BaseModel):
    """
    Detached snapshot of a queued operation.

    Callers change ``state`` (and optionally ``version``) on a copy and pass it
    back to ``OperationsQueue.update``; every other field is ignored there.
    """
    id: str = Field(..., description="Globally unique operation id")
    sequence: int = Field(..., description="Replay order (file-time ticks)")
    kind: OperationKind = Field(OperationKind.UNKNOWN, description="Kind of mutation")
    state: OperationState = Field(OperationState.PENDING, description="Lifecycle state")
    item_id: str = Field("", description="Affected entity id")
    table_name: str = Field("", description="Affected logical table")
    serialized_item: str = Field("", description="Entity snapshot for Delete/Replace")
    version: int = Field(0, description="Optimistic-concurrency stamp")

    @property
    def created_at(self) -> datetime:
        return from_file_time(self.sequence)

    def with_state(self, state: OperationState) -> "Operation":
        """Copy of this operation with a new state, ready for ``update``."""
        return self.model_copy(update={"state": state})

    class Config:
        from_attributes = True


class OperationResult(BaseModel, Generic[T]):
    """Outcome of one item in an offline table call."""
    is_successful: bool = Field(..., description="Whether the item was applied")
    item_id: Optional[str] = Field(None, description="Id of the addressed entity")
    value: Optional[T] = Field(None, description="Resulting entity, when there is one")
    operation_id: Optional[str] = Field(None, description="Id of the queued operation")
    error_message: Optional[str] = Field(None, description="Why the item was not applied")

    @classmethod
    def success(cls, item_id: str, value: Optional[T] = None, operation_id: Optional[str] = None):
        return cls(is_successful=True, item_id=item_id, value=value, operation_id=operation_id)

    @classmethod
    def failure(cls, item_id: Optional[str], error: Exception):
        return cls(is_successful=False, item_id=item_id, error_message=str(error))
