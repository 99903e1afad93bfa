from sqlalchemy import Column, String, Text, Boolean, JSON, Uuid, ForeignKey

from app.db.base import BaseModel


class Composite(BaseModel):
    __tablename__ = "composites"
    
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    author = Column(Uuid(as_uuid=True), index=True, nullable=False)
    # Текущий документ композита; может указывать и в db_archive
    compose_id = Column(Uuid(as_uuid=True), index=True, nullable=False)
    archived = Column(Boolean, default=False, nullable=False)


class CompositeRelationship(BaseModel):
    __tablename__ = "composite_relationships"

    source_composite_id = Column(Uuid(as_uuid=True), ForeignKey("composites.id"), index=True, nullable=False)
    target_composite_id = Column(Uuid(as_uuid=True), ForeignKey("composites.id"), index=True, nullable=False)
    relationship_type = Column(String(50), nullable=False)
    # "metadata" зарезервировано в декларативной модели
    metadata_ = Column("metadata", JSON, default=dict)
