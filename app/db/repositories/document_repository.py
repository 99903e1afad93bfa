from typing import Optional, List, Dict, Iterable, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
import uuid

from app.db.models.document import Document as DocumentModel, ArchivedDocument as ArchivedDocumentModel
from app.domains.documents.entities import Document


class DocumentRepository:
    """Репозиторий для работы с документами (db и db_archive).

    Репозиторий только отправляет изменения в сессию (flush); фиксацию
    транзакции выполняет сервис, которому известны границы операции.
    """
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def create(self, document: Document) -> Document:
        """Создание нового активного документа"""
        db_document = DocumentModel(
            id=document.id,
            json=document.json,
            author=document.author,
            schema=document.schema,
            version=document.version,
            prev=document.prev
        )
        
        self.session.add(db_document)
        await self.session.flush()
        await self.session.refresh(db_document)
        return self._to_domain(db_document)
    
    async def get_active(self, document_id: uuid.UUID) -> Optional[Document]:
        """Получение документа из активной таблицы"""
        result = await self.session.execute(
            select(DocumentModel).where(DocumentModel.id == document_id)
        )
        db_document = result.scalar_one_or_none()
        return self._to_domain(db_document) if db_document else None
    
    async def get_archived(self, document_id: uuid.UUID) -> Optional[Document]:
        """Получение документа из архива"""
        result = await self.session.execute(
            select(ArchivedDocumentModel).where(ArchivedDocumentModel.id == document_id)
        )
        db_document = result.scalar_one_or_none()
        return self._to_domain(db_document) if db_document else None
    
    async def get_any(self, document_id: uuid.UUID) -> Optional[Document]:
        """Получение документа: сначала активная таблица, затем архив"""
        document = await self.get_active(document_id)
        if document is None:
            document = await self.get_archived(document_id)
        return document
    
    async def get_many(self, document_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, Document]:
        """Пакетное получение документов с добором недостающих из архива"""
        ids = list(set(document_ids))
        if not ids:
            return {}
        
        result = await self.session.execute(
            select(DocumentModel).where(DocumentModel.id.in_(ids))
        )
        documents = {row.id: self._to_domain(row) for row in result.scalars().all()}
        
        remaining = [document_id for document_id in ids if document_id not in documents]
        if remaining:
            result = await self.session.execute(
                select(ArchivedDocumentModel).where(ArchivedDocumentModel.id.in_(remaining))
            )
            for row in result.scalars().all():
                documents[row.id] = self._to_domain(row)
        
        return documents
    
    async def update(self, document: Document) -> Document:
        """Обновление активного документа на месте"""
        if document.archived:
            raise ValueError("Archived documents are immutable")

        db_document = await self.session.get(DocumentModel, document.id)
        if db_document is None:
            return None

        db_document.json = document.json
        db_document.version = document.version
        db_document.updated_at = document.updated_at
        await self.session.flush()
        await self.session.refresh(db_document)

        return self._to_domain(db_document)
    
    async def archive(self, document_id: uuid.UUID) -> Optional[Document]:
        """Перенос документа из db в db_archive с сохранением идентификатора"""
        result = await self.session.execute(
            select(DocumentModel).where(DocumentModel.id == document_id)
        )
        db_document = result.scalar_one_or_none()
        if db_document is None:
            return None
        
        self.session.add(ArchivedDocumentModel(
            id=db_document.id,
            json=db_document.json,
            author=db_document.author,
            schema=db_document.schema,
            version=db_document.version,
            prev=db_document.prev,
            created_at=db_document.created_at,
            updated_at=db_document.updated_at
        ))
        await self.session.delete(db_document)
        await self.session.flush()

        return await self.get_archived(document_id)
    
    async def restore(self, document_id: uuid.UUID) -> Optional[Document]:
        """Возврат документа из архива в активную таблицу"""
        result = await self.session.execute(
            select(ArchivedDocumentModel).where(ArchivedDocumentModel.id == document_id)
        )
        db_document = result.scalar_one_or_none()
        if db_document is None:
            return None
        
        self.session.add(DocumentModel(
            id=db_document.id,
            json=db_document.json,
            author=db_document.author,
            schema=db_document.schema,
            version=db_document.version,
            prev=db_document.prev,
            created_at=db_document.created_at,
            updated_at=db_document.updated_at
        ))
        await self.session.delete(db_document)
        await self.session.flush()
        
        return await self.get_active(document_id)
    
    async def count_active(self) -> int:
        """Количество активных документов"""
        result = await self.session.execute(select(func.count(DocumentModel.id)))
        return result.scalar()
    
    def _to_domain(self, db_document: Union[DocumentModel, ArchivedDocumentModel]) -> Document:
        """Преобразование модели БД в доменную сущность"""
        return Document(
            id=db_document.id,
            json=db_document.json,
            author=db_document.author,
            schema=db_document.schema,
            version=db_document.version,
            prev=db_document.prev,
            archived=isinstance(db_document, ArchivedDocumentModel),
            created_at=db_document.created_at,
            updated_at=db_document.updated_at
        )
