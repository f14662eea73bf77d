"""
File: app/domains/users/service.py
Description: 用户领域服务 (业务逻辑层)

本模块封装用户资料与账号管理的核心业务逻辑：
1. 个人资料：查询、更新 (邮箱/手机号变更重新校验唯一性)、修改密码、查看已绑定渠道
2. 管理员操作：用户列表、封禁/解封、软删除/恢复

注意：
- 所有数据库写操作的事务提交 (Commit) 由本层负责。
- 用户永不物理删除；恢复账号时若邮箱/手机号已被其他有效用户占用则拒绝。

Created: 2026-03-06
"""

from app.core.exceptions import AppException
from app.core.logging import logger
from app.core.security import get_password_hash_async, verify_password_async
from app.db.models.provider_binding import ProviderBinding
from app.db.models.user import User
from app.domains.identity.repository import ProviderBindingRepository
from app.domains.users.constants import UserError
from app.domains.users.repository import UserRepository
from app.domains.users.schemas import UserUpdate


class UserService:
    """
    用户领域服务。
    """

    def __init__(self, repo: UserRepository, binding_repo: ProviderBindingRepository):
        self.repo = repo
        self.binding_repo = binding_repo

    async def get(self, user_id: int) -> User:
        """
        获取用户详情。
        软删除视为不存在。
        """
        user = await self.repo.get_active(user_id)
        if user is None:
            raise AppException(UserError.USER_NOT_FOUND)
        return user

    async def update_profile(self, user_id: int, obj_in: UserUpdate) -> User:
        user = await self.get(user_id)
        update_data = obj_in.model_dump(exclude_unset=True)

        if "email" in update_data and update_data["email"] != user.email:
            new_email = update_data["email"]
            if new_email and await self.repo.email_taken(new_email, user.id):
                raise AppException(UserError.EMAIL_ALREADY_EXISTS)
            # 新邮箱需要重新验证
            update_data["is_email_verified"] = False

        if "phone" in update_data and update_data["phone"] != user.phone:
            new_phone = update_data["phone"]
            if new_phone and await self.repo.phone_taken(new_phone, user.id):
                raise AppException(UserError.PHONE_ALREADY_EXISTS)

        updated_user = await self.repo.update(user, update_data)
        await self.repo.session.commit()

        logger.bind(user_id=user_id, fields=sorted(update_data)).info(
            "User profile updated"
        )
        return updated_user

    async def update_password(
        self, user_id: int, current_password: str, new_password: str
    ) -> None:
        user = await self.get(user_id)
        if not await verify_password_async(current_password, user.hashed_password):
            raise AppException(UserError.INVALID_PASSWORD)

        user.hashed_password = await get_password_hash_async(new_password)
        await self.repo.session.commit()

        logger.bind(user_id=user_id).info("User password updated")

    async def list_bindings(self, user_id: int) -> list[ProviderBinding]:
        return await self.binding_repo.list_for_user(user_id)

    # --------------------------------------------------------------------------
    # 管理员操作
    # --------------------------------------------------------------------------

    async def list_users(
        self, *, skip: int = 0, limit: int = 100, include_deleted: bool = False
    ) -> list[User]:
        return await self.repo.list_users(
            skip=skip, limit=limit, include_deleted=include_deleted
        )

    async def get_any(self, user_id: int) -> User:
        """管理员查询，包含已软删除的用户"""
        user = await self.repo.get(user_id)
        if user is None:
            raise AppException(UserError.USER_NOT_FOUND)
        return user

    async def set_banned(self, user_id: int, banned: bool) -> User:
        user = await self.get(user_id)
        user.is_banned = banned
        await self.repo.session.commit()

        logger.bind(user_id=user_id, banned=banned).info("User ban status changed")
        return user

    async def soft_delete(self, user_id: int) -> User:
        user = await self.get(user_id)
        user.soft_delete()
        await self.repo.session.commit()

        logger.bind(user_id=user_id).info("User soft deleted")
        return user

    async def restore(self, user_id: int) -> User:
        user = await self.get_any(user_id)
        if not user.is_deleted:
            return user

        if user.email and await self.repo.email_taken(user.email, user.id):
            raise AppException(UserError.EMAIL_ALREADY_EXISTS)
        if user.phone and await self.repo.phone_taken(user.phone, user.id):
            raise AppException(UserError.PHONE_ALREADY_EXISTS)

        user.restore()
        await self.repo.session.commit()

        logger.bind(user_id=user_id).info("User restored")
        return user
