import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.exceptions import InvalidTransitionError


class PatchStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OperationType(Enum):
    """Типы изменений поля документа"""
    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


class PatchRequest:
    """Запрос на изменение: пара документов до/после для композита"""
    
    def __init__(
        self,
        id: uuid.UUID,
        title: str,
        author: uuid.UUID,
        composite_id: uuid.UUID,
        old_version_id: Optional[uuid.UUID],
        new_version_id: Optional[uuid.UUID],
        status: PatchStatus = PatchStatus.PENDING,
        description: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.id = id
        self.title = title
        self.description = description
        self.author = author
        self.composite_id = composite_id
        self.old_version_id = old_version_id
        self.new_version_id = new_version_id
        self.status = status
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)
    
    @property
    def is_pending(self) -> bool:
        return self.status == PatchStatus.PENDING
    
    def approve(self) -> None:
        self._transition(PatchStatus.APPROVED)
    
    def reject(self) -> None:
        self._transition(PatchStatus.REJECTED)
    
    def _transition(self, status: PatchStatus) -> None:
        if not self.is_pending:
            raise InvalidTransitionError(f"Patch request already {self.status.value}")
        self.status = status
        self.updated_at = datetime.now(timezone.utc)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "author": self.author,
            "composite_id": self.composite_id,
            "old_version_id": self.old_version_id,
            "new_version_id": self.new_version_id,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
    
    @classmethod
    def create_request(
        cls,
        title: str,
        author: uuid.UUID,
        composite_id: uuid.UUID,
        old_version_id: Optional[uuid.UUID],
        new_version_id: Optional[uuid.UUID],
        description: Optional[str] = None,
        status: PatchStatus = PatchStatus.PENDING
    ) -> "PatchRequest":
        return cls(
            id=uuid.uuid4(),
            title=title,
            description=description,
            author=author,
            composite_id=composite_id,
            old_version_id=old_version_id,
            new_version_id=new_version_id,
            status=status
        )
    
    def __repr__(self) -> str:
        return f"PatchRequest(id={self.id}, composite_id={self.composite_id}, status={self.status.value})"


class Operation:
    """Изменение одного поля верхнего уровня"""
    
    def __init__(
        self,
        operation_type: OperationType,
        path: List[str],
        old_value: Any = None,
        new_value: Any = None,
        patch_request_id: Optional[uuid.UUID] = None,
        author: Optional[uuid.UUID] = None,
        composite_id: Optional[uuid.UUID] = None,
        content_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None
    ):
        self.id = uuid.uuid4()
        self.operation_type = operation_type
        self.path = path
        self.old_value = old_value
        self.new_value = new_value
        self.patch_request_id = patch_request_id
        self.author = author
        self.composite_id = composite_id
        self.content_id = content_id
        self.metadata = metadata or {}
        self.created_at = created_at or datetime.now(timezone.utc)
    
    def bind(self, patch_request: PatchRequest, content_id: Optional[uuid.UUID] = None) -> "Operation":
        """Привязка операции к запросу на изменение"""
        self.patch_request_id = patch_request.id
        self.author = patch_request.author
        self.composite_id = patch_request.composite_id
        self.content_id = content_id or patch_request.new_version_id
        return self
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "operation_type": self.operation_type.value,
            "path": self.path,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "created_at": self.created_at,
            "metadata": self.metadata,
            "patch_request_id": self.patch_request_id,
        }
    
    def __repr__(self) -> str:
        return f"Operation({self.operation_type.value} {'/'.join(self.path)})"


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def diff_operations(before: Any, after: Any) -> List[Operation]:
    """Поверхностный diff по ключам верхнего уровня.

    Вложенные объекты и массивы сравниваются целиком по сериализованному
    значению: изменение внутри поддерева дает одну операцию replace
    для всего ключа верхнего уровня. Операции одного diff получают общее
    время создания и порядковый номер в metadata["ordinal"].
    """
    if not isinstance(before, dict) or not isinstance(after, dict):
        if _canonical(before) == _canonical(after):
            return []
        return _ordered([Operation(OperationType.REPLACE, [], old_value=before, new_value=after)])

    operations = []
    for key, old_value in before.items():
        if key not in after:
            operations.append(Operation(OperationType.REMOVE, [key], old_value=old_value))
        elif _canonical(old_value) != _canonical(after[key]):
            operations.append(Operation(OperationType.REPLACE, [key], old_value=old_value, new_value=after[key]))

    for key, new_value in after.items():
        if key not in before:
            operations.append(Operation(OperationType.ADD, [key], new_value=new_value))

    return _ordered(operations)


def _ordered(operations: List[Operation]) -> List[Operation]:
    created_at = datetime.now(timezone.utc)
    for ordinal, operation in enumerate(operations):
        operation.created_at = created_at
        operation.metadata["ordinal"] = ordinal
    return operations
