from typing import Optional, List, Iterable, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
import uuid

from app.db.models.composite import (
    Composite as CompositeModel,
    CompositeRelationship as CompositeRelationshipModel
)
from app.domains.composites.entities import Composite, CompositeRelationship, RelationshipType


class CompositeRepository:
    """Репозиторий для работы с композитами"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def create(self, composite: Composite) -> Composite:
        """Создание композита"""
        db_composite = CompositeModel(
            id=composite.id,
            title=composite.title,
            description=composite.description,
            author=composite.author,
            compose_id=composite.compose_id,
            archived=composite.archived
        )
        
        self.session.add(db_composite)
        await self.session.flush()
        await self.session.refresh(db_composite)
        return self._to_domain(db_composite)
    
    async def get_by_id(self, composite_id: uuid.UUID) -> Optional[Composite]:
        """Получение композита по id"""
        db_composite = await self.session.get(CompositeModel, composite_id)
        return self._to_domain(db_composite) if db_composite else None
    
    async def get_by_compose_id(self, document_id: uuid.UUID) -> List[Composite]:
        """Композиты, текущий документ которых равен document_id"""
        result = await self.session.execute(
            select(CompositeModel)
            .where(CompositeModel.compose_id == document_id)
            .order_by(CompositeModel.created_at.asc())
        )
        return [self._to_domain(row) for row in result.scalars().all()]
    
    async def get_many(self, composite_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, Composite]:
        ids = list(set(composite_ids))
        if not ids:
            return {}
        result = await self.session.execute(
            select(CompositeModel).where(CompositeModel.id.in_(ids))
        )
        return {row.id: self._to_domain(row) for row in result.scalars().all()}
    
    async def update(self, composite: Composite) -> Optional[Composite]:
        """Обновление композита"""
        db_composite = await self.session.get(CompositeModel, composite.id)
        if db_composite is None:
            return None
        
        db_composite.title = composite.title
        db_composite.description = composite.description
        db_composite.compose_id = composite.compose_id
        db_composite.archived = composite.archived
        db_composite.updated_at = composite.updated_at
        await self.session.flush()
        await self.session.refresh(db_composite)
        
        return self._to_domain(db_composite)
    
    async def repoint(self, old_document_id: uuid.UUID, new_document_id: uuid.UUID) -> int:
        """Перевод всех композитов со старого документа на новый.

        Композит, указывающий на восстановленный документ, снова активен.
        """
        composites = await self.get_by_compose_id(old_document_id)
        for composite in composites:
            composite.point_to(new_document_id)
            composite.archived = False
            await self.update(composite)
        return len(composites)
    
    def _to_domain(self, db_composite: CompositeModel) -> Composite:
        """Преобразование модели БД в доменную сущность"""
        return Composite(
            id=db_composite.id,
            title=db_composite.title,
            description=db_composite.description,
            compose_id=db_composite.compose_id,
            author=db_composite.author,
            archived=db_composite.archived,
            created_at=db_composite.created_at,
            updated_at=db_composite.updated_at
        )


class CompositeRelationshipRepository:
    """Репозиторий для связей между композитами"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def create(self, relationship: CompositeRelationship) -> CompositeRelationship:
        """Создание связи"""
        db_relationship = CompositeRelationshipModel(
            id=relationship.id,
            source_composite_id=relationship.source_composite_id,
            target_composite_id=relationship.target_composite_id,
            relationship_type=relationship.relationship_type.value,
            metadata_=relationship.metadata
        )
        
        self.session.add(db_relationship)
        await self.session.flush()
        await self.session.refresh(db_relationship)
        return self._to_domain(db_relationship)
    
    async def get_for_composite(self, composite_id: uuid.UUID) -> List[CompositeRelationship]:
        """Все ребра, в которых участвует композит (в любом направлении)"""
        result = await self.session.execute(
            select(CompositeRelationshipModel)
            .where(
                or_(
                    CompositeRelationshipModel.source_composite_id == composite_id,
                    CompositeRelationshipModel.target_composite_id == composite_id
                )
            )
            .order_by(CompositeRelationshipModel.created_at.desc())
        )
        return [self._to_domain(row) for row in result.scalars().all()]
    
    async def get_by_targets(self, target_ids: Iterable[uuid.UUID]) -> List[CompositeRelationship]:
        """Ребра, ведущие в указанные композиты"""
        ids = list(set(target_ids))
        if not ids:
            return []
        result = await self.session.execute(
            select(CompositeRelationshipModel)
            .where(CompositeRelationshipModel.target_composite_id.in_(ids))
            .order_by(CompositeRelationshipModel.created_at.desc())
        )
        return [self._to_domain(row) for row in result.scalars().all()]
    
    def _to_domain(self, db_relationship: CompositeRelationshipModel) -> CompositeRelationship:
        """Преобразование модели БД в доменную сущность"""
        return CompositeRelationship(
            id=db_relationship.id,
            source_composite_id=db_relationship.source_composite_id,
            target_composite_id=db_relationship.target_composite_id,
            relationship_type=RelationshipType(db_relationship.relationship_type),
            metadata=db_relationship.metadata_,
            created_at=db_relationship.created_at
        )
