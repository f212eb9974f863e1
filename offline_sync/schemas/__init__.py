from offline_sync.schemas.operation import Operation, OperationResult

__all__ = ["Operation", "OperationResult"]
