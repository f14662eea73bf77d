"""
File: app/domains/identity/repository.py
Description: 第三方绑定仓储层 (ProviderBinding Repository)

1. get_by_subject: 按 (provider, provider_uid) 精确查询
2. get_by_union_id: 按跨端关联键查询 (任意渠道)
3. get_for_user / list_for_user: 按用户查询
4. create_binding: 创建绑定，唯一约束冲突映射为 provider_already_bound

Created: 2026-03-04
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import AppException
from app.db.models.provider_binding import ProviderBinding, ProviderKind
from app.db.repositories.base import BaseRepository
from app.domains.identity.constants import IdentityError
from app.domains.identity.schemas import ExternalIdentity
from app.utils.masking import mask_sensitive_data


class ProviderBindingRepository(
    BaseRepository[ProviderBinding, ExternalIdentity, ExternalIdentity]
):
    async def get_by_subject(
        self, provider: ProviderKind, provider_uid: str
    ) -> ProviderBinding | None:
        stmt = select(ProviderBinding).where(
            ProviderBinding.provider == provider.value,
            ProviderBinding.provider_uid == provider_uid,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_union_id(self, union_id: str) -> ProviderBinding | None:
        """
        查询共享该 union_id 的任意绑定。
        同一 union_id 只会属于一个用户，取最早创建的一条。
        """
        stmt = (
            select(ProviderBinding)
            .where(ProviderBinding.union_id == union_id)
            .order_by(ProviderBinding.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_user(
        self, user_id: int, provider: ProviderKind
    ) -> ProviderBinding | None:
        stmt = select(ProviderBinding).where(
            ProviderBinding.user_id == user_id,
            ProviderBinding.provider == provider.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int) -> list[ProviderBinding]:
        return await self.list(ProviderBinding.user_id == user_id)

    async def create_binding(
        self, user_id: int, identity: ExternalIdentity
    ) -> ProviderBinding:
        """
        创建绑定。
        并发请求可能同时通过前置检查，最终由存储层唯一约束兜底。
        """
        binding = ProviderBinding(
            user_id=user_id,
            provider=identity.provider.value,
            provider_uid=identity.subject,
            union_id=identity.union_id,
            access_token=identity.access_token,
            refresh_token=identity.refresh_token,
            expires_at=identity.expires_at,
            extra_data=mask_sensitive_data(identity.raw) or None,
        )
        try:
            return await self.add(binding)
        except IntegrityError as exc:
            await self.session.rollback()
            raise AppException(
                IdentityError.PROVIDER_ALREADY_BOUND, cause=exc
            ) from exc
