import enum

from sqlalchemy import Column, String, Text, JSON, Uuid, ForeignKey, Enum

from app.db.base import BaseModel


class PatchStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OperationType(enum.Enum):
    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


class PatchRequest(BaseModel):
    __tablename__ = "patch_requests"
    
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    author = Column(Uuid(as_uuid=True), index=True, nullable=False)
    old_version_id = Column(Uuid(as_uuid=True), nullable=True)
    new_version_id = Column(Uuid(as_uuid=True), nullable=True)
    composite_id = Column(Uuid(as_uuid=True), ForeignKey("composites.id"), index=True, nullable=False)
    status = Column(
        Enum(PatchStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=PatchStatus.PENDING,
        nullable=False,
    )


class DocumentOperation(BaseModel):
    """Операция изменения поля, выведенная из diff до/после (таблица db_operations)"""
    __tablename__ = "db_operations"

    patch_request_id = Column(Uuid(as_uuid=True), ForeignKey("patch_requests.id"), index=True, nullable=False)
    operation_type = Column(
        Enum(OperationType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    path = Column(JSON, nullable=False, default=list)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    author = Column(Uuid(as_uuid=True), nullable=False)
    composite_id = Column(Uuid(as_uuid=True), nullable=True)
    content_id = Column(Uuid(as_uuid=True), nullable=True)
    metadata_ = Column("metadata", JSON, default=dict)
