from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import exists, func, select, update
from sqlalchemy.exc import IntegrityError
import uuid

from copyit.db.models.user import User as UserModel
from copyit.domains.identity.entities import User


class UserRepository:
    """Учетные записи для входа по email и паролю"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User) -> User:
        """Сохранение нового пользователя; занятый email дает ValueError"""
        db_user = UserModel(
            uuid=user.uuid,
            email=user.email,
            password_hash=user.password_hash,
            is_active=user.is_active
        )

        self.session.add(db_user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValueError(f"Email {user.email} is already registered")

        await self.session.refresh(db_user)
        return self._to_domain(db_user)

    async def get_by_uuid(self, user_uuid: uuid.UUID) -> Optional[User]:
        return await self._first(UserModel.uuid == user_uuid)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Поиск без учета регистра адреса"""
        return await self._first(func.lower(UserModel.email) == email.lower())

    async def email_exists(self, email: str) -> bool:
        result = await self.session.execute(
            select(exists().where(func.lower(UserModel.email) == email.lower()))
        )
        return bool(result.scalar())

    async def set_active(self, user_uuid: uuid.UUID, is_active: bool) -> bool:
        """Блокировка или разблокировка; False, если пользователя нет"""
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.uuid == user_uuid)
            .values(is_active=is_active)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def _first(self, condition) -> Optional[User]:
        result = await self.session.execute(select(UserModel).where(condition))
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    def _to_domain(self, db_user: UserModel) -> User:
        return User(
            uuid=db_user.uuid,
            email=db_user.email,
            password_hash=db_user.password_hash,
            is_active=bool(db_user.is_active),
            created_at=db_user.created_at,
            updated_at=db_user.updated_at
        )
