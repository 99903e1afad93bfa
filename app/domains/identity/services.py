from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from app.db.repositories.user_repository import UserRepository
from app.domains.identity.entities import User
from app.domains.identity.schemas import UserCreate, UserLogin
from app.core.security import create_access_token, verify_token


class IdentityService:
    """Сервис для работы с идентификацией и аутентификацией пользователей"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repository = UserRepository(session)
    
    async def register_user(self, user_data: UserCreate) -> User:
        """Регистрация нового пользователя"""
        if await self.user_repository.email_exists(user_data.email):
            raise ValueError("Email already registered")
        
        user = User.create_user(
            email=user_data.email,
            name=user_data.name,
            password=user_data.password
        )
        
        created = await self.user_repository.create(user)
        await self.session.commit()
        return created
    
    async def login_user(self, login_data: UserLogin) -> Optional[str]:
        """Вход пользователя и создание JWT токена"""
        user = await self.user_repository.get_by_email(login_data.email)
        
        if not user or not user.is_active or not user.authenticate(login_data.password):
            return None
        
        return create_access_token(data={"sub": str(user.id), "name": user.name})
    
    async def get_current_user_from_token(self, token: str) -> Optional[User]:
        """Получение текущего пользователя из JWT токена"""
        payload = verify_token(token)
        if not payload or not payload.get("sub"):
            return None
        
        try:
            user_id = uuid.UUID(payload["sub"])
        except ValueError:
            return None
        
        user = await self.user_repository.get_by_id(user_id)
        if user is None or not user.is_active:
            return None
        
        return user
