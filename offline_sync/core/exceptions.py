"""
Exceptions raised by the offline store.

Storage faults coming from SQLAlchemy or the database driver are never wrapped
in these types; they reach the caller unchanged.
"""

from typing import Any


class OfflineStoreError(Exception):
    """Base class for errors raised by the offline store."""


class OperationNotFoundError(OfflineStoreError):
    """Raised when no queued operation matches the requested id."""

    def __init__(self, operation_id: str):
        self.operation_id = operation_id
        super().__init__(f"Operation {operation_id} not found in the operations queue")


class InvalidStateTransitionError(OfflineStoreError):
    """Raised when strict transitions are enabled and an update leaves the state machine."""

    def __init__(self, operation_id: str, current: Any, requested: Any):
        self.operation_id = operation_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Operation {operation_id} cannot move from {getattr(current, 'value', current)} "
            f"to {getattr(requested, 'value', requested)}"
        )


class EntityNotFoundError(OfflineStoreError):
    """Raised by an offline table when the addressed row does not exist."""

    def __init__(self, table_name: str, item_id: str):
        self.table_name = table_name
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found in table {table_name}")


class EntityExistsError(OfflineStoreError):
    """Raised by an offline table when adding a row whose id is already taken."""

    def __init__(self, table_name: str, item_id: str):
        self.table_name = table_name
        self.item_id = item_id
        super().__init__(f"Item {item_id} already exists in table {table_name}")
