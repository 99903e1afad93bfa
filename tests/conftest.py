"""Общие фикстуры тестов.

Настройки читаются из окружения при импорте app.core.config, поэтому
минимальные значения выставляются до импорта приложения.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from typing import Any, AsyncGenerator, Dict, Optional
import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.config import settings
from app.core.db import Base, get_db
from app.core.security import create_access_token, get_password_hash
from app.db.repositories import (
    UserRepository, DocumentRepository, CompositeRepository
)
from app.domains.composites.entities import Composite
from app.domains.composites.merge import get_merge_resolver
from app.domains.documents.entities import Document
from app.domains.identity.entities import User

PERSON_SCHEMA = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "title": "Name"},
        "age": {"type": "integer", "title": "Age", "minimum": 0},
    },
}


class FakeMergeResolver:
    """Резолвер слияния с заранее заданным ответом"""

    def __init__(self):
        self.result: Dict[str, Any] = {"success": True}
        self.error: Optional[Exception] = None
        self.calls = []

    async def merge(self, user_id, source_composite_id, target_composite_id):
        self.calls.append((user_id, source_composite_id, target_composite_id))
        if self.error is not None:
            raise self.error
        return self.result


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def merge_resolver() -> FakeMergeResolver:
    return FakeMergeResolver()


@pytest_asyncio.fixture
async def client(db, merge_resolver) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_merge_resolver] = lambda: merge_resolver
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_user(db: AsyncSession, name: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{name.lower()}@example.com",
        name=name,
        password_hash=get_password_hash("password123")
    )
    created = await UserRepository(db).create(user)
    await db.commit()
    return created


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def alice(db) -> User:
    return await make_user(db, "Alice")


@pytest_asyncio.fixture
async def bob(db) -> User:
    return await make_user(db, "Bob")


@pytest_asyncio.fixture
async def person_schema(db, alice) -> Document:
    """Документ-схема, сам проверяемый по мета-схеме"""
    schema = await DocumentRepository(db).create(Document.create_document(
        json=PERSON_SCHEMA,
        author=alice.id,
        schema=settings.meta_schema_id
    ))
    await db.commit()
    return schema


async def make_composite(db: AsyncSession, author: User, content: Any, schema_id: Optional[uuid.UUID] = None,
                         title: str = "People"):
    document = await DocumentRepository(db).create(Document.create_document(
        json=content,
        author=author.id,
        schema=schema_id
    ))
    composite = await CompositeRepository(db).create(Composite.create_composite(
        title=title,
        compose_id=document.id,
        author=author.id
    ))
    await db.commit()
    return composite, document
