import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


TITLE_MAX_LENGTH = 255


class RelationshipType(Enum):
    """Типы связей между композитами"""
    VARIATION_OF = "variation_of"
    EDIT_VARIATION = "edit_variation"


class Composite:
    """Именованный указатель на текущий документ"""
    
    def __init__(
        self,
        id: uuid.UUID,
        title: str,
        compose_id: uuid.UUID,
        author: uuid.UUID,
        description: Optional[str] = None,
        archived: bool = False,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.id = id
        self.title = title
        self.description = description
        self.compose_id = compose_id
        self.author = author
        self.archived = archived
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)
    
    def is_owned_by(self, user_id: Optional[uuid.UUID]) -> bool:
        return user_id is not None and self.author == user_id
    
    def point_to(self, document_id: uuid.UUID) -> None:
        """Смена текущего документа композита"""
        self.compose_id = document_id
        self.updated_at = datetime.now(timezone.utc)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "compose_id": self.compose_id,
            "author": self.author,
            "archived": self.archived,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
    
    @classmethod
    def create_variation(
        cls,
        source: "Composite",
        compose_id: uuid.UUID,
        author: uuid.UUID,
        title: Optional[str] = None,
        description: Optional[str] = None
    ) -> "Composite":
        """Новый композит-вариация исходного; производный заголовок обрезается до ширины колонки"""
        derived = f"Variation of {source.title}"
        return cls(
            id=uuid.uuid4(),
            title=(title or derived)[:TITLE_MAX_LENGTH],
            description=description or derived,
            compose_id=compose_id,
            author=author
        )
    
    @classmethod
    def create_composite(
        cls,
        title: str,
        compose_id: uuid.UUID,
        author: uuid.UUID,
        description: Optional[str] = None
    ) -> "Composite":
        return cls(id=uuid.uuid4(), title=title, description=description, compose_id=compose_id, author=author)
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Composite):
            return False
        return self.id == other.id
    
    def __repr__(self) -> str:
        return f"Composite(id={self.id}, title={self.title}, compose_id={self.compose_id})"


class CompositeRelationship:
    """Направленное ребро между композитами (source -> target)"""
    
    def __init__(
        self,
        id: uuid.UUID,
        source_composite_id: uuid.UUID,
        target_composite_id: uuid.UUID,
        relationship_type: RelationshipType,
        metadata: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None
    ):
        self.id = id
        self.source_composite_id = source_composite_id
        self.target_composite_id = target_composite_id
        self.relationship_type = relationship_type
        self.metadata = metadata or {}
        self.created_at = created_at or datetime.now(timezone.utc)
    
    def other_end(self, composite_id: uuid.UUID) -> uuid.UUID:
        """Противоположный конец ребра относительно composite_id"""
        if composite_id == self.source_composite_id:
            return self.target_composite_id
        return self.source_composite_id
    
    @classmethod
    def link(
        cls,
        source: Composite,
        target: Composite,
        relationship_type: RelationshipType,
        description: Optional[str] = None,
        **extra: Any
    ) -> "CompositeRelationship":
        """Создание ребра с метаданными о времени и описанием"""
        metadata = {
            "created_at": datetime.now(timezone.utc).isoformat(),
            "description": description or f"Variation of {target.title}",
            "target_composite_id": str(target.id),
        }
        metadata.update(extra)
        return cls(
            id=uuid.uuid4(),
            source_composite_id=source.id,
            target_composite_id=target.id,
            relationship_type=relationship_type,
            metadata=metadata
        )
    
    def __repr__(self) -> str:
        return (
            f"CompositeRelationship({self.source_composite_id} "
            f"-{self.relationship_type.value}-> {self.target_composite_id})"
        )
