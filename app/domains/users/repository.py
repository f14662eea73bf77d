"""
File: app/domains/users/repository.py
Description: 用户领域仓储层 (Repository)

继承自通用 BaseRepository，扩展：
1. get_active: 按 ID 查询未软删除用户
2. get_by_email / get_by_phone / get_by_email_or_phone: 登录凭证查询 (自动过滤软删除)
3. email_taken / phone_taken: 唯一性预检查 (可排除自身)

Created: 2026-03-03
"""

from sqlalchemy import select

from app.db.models.user import User
from app.db.repositories.base import BaseRepository
from app.domains.users.schemas import UserRegister, UserUpdate


class UserRepository(BaseRepository[User, UserRegister, UserUpdate]):
    """
    用户仓储类。

    注意：
    除 get() 与 list_users(include_deleted=True) 外，查询方法默认过滤软删除数据。
    """

    async def get_active(self, user_id: int) -> User | None:
        user = await self.get(user_id)
        if user is None or user.is_deleted:
            return None
        return user

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email, User.is_deleted.is_(False))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone: str) -> User | None:
        stmt = select(User).where(User.phone == phone, User.is_deleted.is_(False))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email_or_phone(self, email_or_phone: str) -> User | None:
        """
        登录凭证查询：先按邮箱，再按手机号。
        """
        user = await self.get_by_email(email_or_phone)
        if user is None:
            user = await self.get_by_phone(email_or_phone)
        return user

    async def email_taken(self, email: str, exclude_user_id: int | None = None) -> bool:
        owner = await self.get_by_email(email)
        return owner is not None and owner.id != exclude_user_id

    async def phone_taken(self, phone: str, exclude_user_id: int | None = None) -> bool:
        owner = await self.get_by_phone(phone)
        return owner is not None and owner.id != exclude_user_id

    async def list_users(
        self, *, skip: int = 0, limit: int = 100, include_deleted: bool = False
    ) -> list[User]:
        if include_deleted:
            return await self.list(skip=skip, limit=limit)
        return await self.list(User.is_deleted.is_(False), skip=skip, limit=limit)
