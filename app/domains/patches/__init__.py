from app.domains.patches.entities import PatchRequest, PatchStatus, Operation, OperationType, diff_operations

__all__ = ["PatchRequest", "PatchStatus", "Operation", "OperationType", "diff_operations"]
