from sqlalchemy import Column, Integer, JSON, Uuid, DateTime

from app.db.base import BaseModel, utcnow


class Document(BaseModel):
    """Активная версия JSON-документа (таблица db)"""
    __tablename__ = "db"
    
    json = Column(JSON, nullable=True)
    author = Column(Uuid(as_uuid=True), index=True, nullable=False)
    # Ссылка на документ-схему либо на мета-схему (для самих схем)
    schema = Column(Uuid(as_uuid=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    prev = Column(Uuid(as_uuid=True), nullable=True)


class ArchivedDocument(BaseModel):
    """Архивная версия документа (таблица db_archive)"""
    __tablename__ = "db_archive"

    json = Column(JSON, nullable=True)
    author = Column(Uuid(as_uuid=True), index=True, nullable=False)
    schema = Column(Uuid(as_uuid=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    prev = Column(Uuid(as_uuid=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
