import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Optional


class Document:
    """Сущность версионируемого JSON-документа"""
    
    def __init__(
        self,
        id: uuid.UUID,
        json: Any,
        author: uuid.UUID,
        schema: Optional[uuid.UUID] = None,
        version: int = 1,
        prev: Optional[uuid.UUID] = None,
        archived: bool = False,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.id = id
        self.json = json
        self.author = author
        self.schema = schema
        self.version = version
        self.prev = prev
        self.archived = archived
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)
    
    def is_authored_by(self, user_id: Optional[uuid.UUID]) -> bool:
        """Проверка авторства"""
        return user_id is not None and self.author == user_id
    
    def apply_update(self, new_json: Any) -> None:
        """Обновление содержимого на месте с увеличением версии"""
        if self.archived:
            raise ValueError("Archived documents are immutable")
        self.json = new_json
        self.version += 1
        self.updated_at = datetime.now(timezone.utc)
    
    def clone(self, author: uuid.UUID) -> "Document":
        """Дословная копия содержимого в новый документ с версией 1"""
        return Document.create_document(json=copy.deepcopy(self.json), author=author, schema=self.schema)
    
    def adopt(self, author: uuid.UUID) -> "Document":
        """Копия принятой версии от имени владельца композита, prev - на предложение"""
        adopted = self.clone(author=author)
        adopted.prev = self.id
        return adopted

    def revive(self) -> "Document":
        """Восстановление архивного документа в новую активную копию.

        Копия получает исходный JSON (не правку), того же автора и схему,
        а prev указывает на архивный оригинал.
        """
        return Document(
            id=uuid.uuid4(),
            json=copy.deepcopy(self.json),
            author=self.author,
            schema=self.schema,
            version=self.version,
            prev=self.id
        )
    
    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "json": self.json,
            "author": self.author,
            "schema": self.schema,
            "version": self.version,
            "prev": self.prev,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
    
    @classmethod
    def create_document(
        cls,
        json: Any,
        author: uuid.UUID,
        schema: Optional[uuid.UUID] = None,
        prev: Optional[uuid.UUID] = None
    ) -> "Document":
        """Создание нового документа"""
        return cls(
            id=uuid.uuid4(),
            json=json,
            author=author,
            schema=schema,
            version=1,
            prev=prev
        )
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Document):
            return False
        return self.id == other.id
    
    def __repr__(self) -> str:
        return f"Document(id={self.id}, version={self.version}, archived={self.archived})"
