# Import all models to ensure they are registered with SQLModel
from offline_sync.models.delta_token import DeltaToken
from offline_sync.models.mixins import OfflineEntity
from offline_sync.models.operation import (
    OperationKind,
    OperationState,
    OperationsQueueEntry,
    STATE_TRANSITIONS,
    is_valid_transition,
)

__all__ = [
    "DeltaToken",
    "OfflineEntity",
    "OperationKind",
    "OperationState",
    "OperationsQueueEntry",
    "STATE_TRANSITIONS",
    "is_valid_transition",
]
