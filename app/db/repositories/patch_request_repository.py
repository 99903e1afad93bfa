from typing import Optional, List, Iterable, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import uuid

from app.db.models.patch_request import (
    PatchRequest as PatchRequestModel,
    DocumentOperation as DocumentOperationModel,
    PatchStatus as PatchStatusModel,
    OperationType as OperationTypeModel
)
from app.domains.patches.entities import PatchRequest, PatchStatus, Operation, OperationType


class PatchRequestRepository:
    """Репозиторий для запросов на изменение"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def create(self, patch_request: PatchRequest) -> PatchRequest:
        """Создание запроса на изменение"""
        db_request = PatchRequestModel(
            id=patch_request.id,
            title=patch_request.title,
            description=patch_request.description,
            author=patch_request.author,
            old_version_id=patch_request.old_version_id,
            new_version_id=patch_request.new_version_id,
            composite_id=patch_request.composite_id,
            status=PatchStatusModel(patch_request.status.value)
        )
        
        self.session.add(db_request)
        await self.session.flush()
        await self.session.refresh(db_request)
        return self._to_domain(db_request)
    
    async def get_by_id(self, request_id: uuid.UUID) -> Optional[PatchRequest]:
        db_request = await self.session.get(PatchRequestModel, request_id)
        return self._to_domain(db_request) if db_request else None
    
    async def get_by_composites(self, composite_ids: Iterable[uuid.UUID]) -> List[PatchRequest]:
        """Запросы для набора композитов, новые первыми"""
        ids = list(set(composite_ids))
        if not ids:
            return []
        result = await self.session.execute(
            select(PatchRequestModel)
            .where(PatchRequestModel.composite_id.in_(ids))
            .order_by(PatchRequestModel.created_at.desc())
        )
        return [self._to_domain(row) for row in result.scalars().all()]
    
    async def update_status(self, patch_request: PatchRequest) -> Optional[PatchRequest]:
        """Сохранение нового статуса"""
        db_request = await self.session.get(PatchRequestModel, patch_request.id)
        if db_request is None:
            return None
        
        db_request.status = PatchStatusModel(patch_request.status.value)
        db_request.updated_at = patch_request.updated_at
        await self.session.flush()
        await self.session.refresh(db_request)
        
        return self._to_domain(db_request)
    
    def _to_domain(self, db_request: PatchRequestModel) -> PatchRequest:
        """Преобразование модели БД в доменную сущность"""
        return PatchRequest(
            id=db_request.id,
            title=db_request.title,
            description=db_request.description,
            author=db_request.author,
            composite_id=db_request.composite_id,
            old_version_id=db_request.old_version_id,
            new_version_id=db_request.new_version_id,
            status=PatchStatus(db_request.status.value),
            created_at=db_request.created_at,
            updated_at=db_request.updated_at
        )


class OperationRepository:
    """Репозиторий для операций изменения (db_operations)"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def create_many(self, operations: List[Operation]) -> List[Operation]:
        """Пакетное создание операций"""
        for operation in operations:
            self.session.add(DocumentOperationModel(
                id=operation.id,
                patch_request_id=operation.patch_request_id,
                operation_type=OperationTypeModel(operation.operation_type.value),
                path=operation.path,
                old_value=operation.old_value,
                new_value=operation.new_value,
                author=operation.author,
                composite_id=operation.composite_id,
                content_id=operation.content_id,
                metadata_=operation.metadata,
                created_at=operation.created_at
            ))
        await self.session.flush()
        return operations
    
    async def get_by_patch_requests(self, request_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, List[Operation]]:
        """Операции, сгруппированные по запросу, в порядке создания.

        При равном created_at порядок задает metadata["ordinal"].
        """
        ids = list(set(request_ids))
        grouped: Dict[uuid.UUID, List[Operation]] = {}
        if not ids:
            return grouped
        
        result = await self.session.execute(
            select(DocumentOperationModel)
            .where(DocumentOperationModel.patch_request_id.in_(ids))
            .order_by(DocumentOperationModel.created_at.asc())
        )
        for row in result.scalars().all():
            grouped.setdefault(row.patch_request_id, []).append(self._to_domain(row))
        for operations in grouped.values():
            operations.sort(key=lambda operation: (operation.created_at, operation.metadata.get("ordinal", 0)))
        return grouped
    
    def _to_domain(self, db_operation: DocumentOperationModel) -> Operation:
        """Преобразование модели БД в доменную сущность"""
        operation = Operation(
            operation_type=OperationType(db_operation.operation_type.value),
            path=list(db_operation.path or []),
            old_value=db_operation.old_value,
            new_value=db_operation.new_value,
            patch_request_id=db_operation.patch_request_id,
            author=db_operation.author,
            composite_id=db_operation.composite_id,
            content_id=db_operation.content_id,
            metadata=db_operation.metadata_,
            created_at=db_operation.created_at
        )
        operation.id = db_operation.id
        
        return operation
