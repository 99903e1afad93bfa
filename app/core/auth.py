import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.domains.identity.entities import User
from app.domains.identity.services import IdentityService

security = HTTPBearer(auto_error=False)


@dataclass
class OperationContext:
    """Контекст операции: сессия БД и пользователь, от имени которого она выполняется"""
    session: AsyncSession
    user: Optional[User] = None

    @property
    def user_id(self) -> Optional[uuid.UUID]:
        return self.user.id if self.user else None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Пользователь из токена; без заголовка Authorization - None"""
    if credentials is None:
        return None

    user = await IdentityService(db).get_current_user_from_token(credentials.credentials)
    if user is None:
        raise _unauthorized("Could not validate credentials")

    return user


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Зависимость для операций, требующих аутентификации"""
    if user is None:
        raise _unauthorized("Not authenticated")
    return user


async def get_operation_context(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> OperationContext:
    return OperationContext(session=db, user=user)


async def get_public_operation_context(
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
) -> OperationContext:
    return OperationContext(session=db, user=user)
