"""
Offline-sync client runtime.

Local CRUD against entities that are later reconciled with a remote table
service, built on a durable operations queue and a delta-token store.
"""

from offline_sync.core.exceptions import (
    EntityExistsError,
    EntityNotFoundError,
    InvalidStateTransitionError,
    OfflineStoreError,
    OperationNotFoundError,
)
from offline_sync.crud.delta_token_store import DeltaTokenStore, delta_token_id
from offline_sync.crud.offline_table import OfflineTable
from offline_sync.crud.operations_queue import OperationsQueue
from offline_sync.models import DeltaToken, OfflineEntity, OperationKind, OperationState, OperationsQueueEntry
from offline_sync.schemas import Operation, OperationResult
from offline_sync.store import OfflineStore

__all__ = [
    "DeltaToken",
    "DeltaTokenStore",
    "EntityExistsError",
    "EntityNotFoundError",
    "InvalidStateTransitionError",
    "OfflineEntity",
    "OfflineStore",
    "OfflineStoreError",
    "OfflineTable",
    "Operation",
    "OperationKind",
    "OperationNotFoundError",
    "OperationResult",
    "OperationState",
    "OperationsQueue",
    "OperationsQueueEntry",
    "delta_token_id",
]
