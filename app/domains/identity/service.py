"""
File: app/domains/identity/service.py
Description: 身份解析引擎 (Identity Resolution Engine)

将一个规范化的外部身份 (ExternalIdentity) 映射到唯一的内部用户：

1. (provider, subject) 已绑定 -> 绑定所属用户            [existing]
2. 否则若携带 union_id 且已有绑定共享该 union_id
   -> 为该用户追加当前渠道绑定                          [linked]
3. 否则若邮箱 / 手机号已属于其他未注销用户 -> 409 冲突 (不按邮箱静默合并账号)
4. 否则新建用户 + 绑定                                  [created]
5. 解析完成后统一做封禁检查 (封禁只是关卡，不是解析条件)

本层只 flush，不 commit，事务由 Session Orchestrator 统一提交。

Created: 2026-03-04
"""

from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.exceptions import AppException
from app.core.logging import logger
from app.db.models.provider_binding import ProviderKind
from app.db.models.user import User
from app.domains.auth.constants import AuthError
from app.domains.identity.constants import IdentityError
from app.domains.identity.repository import ProviderBindingRepository
from app.domains.identity.schemas import (
    ExternalIdentity,
    ProfileHints,
    Resolution,
    ResolutionOutcome,
)
from app.domains.users.constants import UserError
from app.domains.users.repository import UserRepository
from app.utils.masking import mask_subject


def default_display_name(identity: ExternalIdentity) -> str:
    """渠道未提供昵称时的默认显示名"""
    if identity.provider in (ProviderKind.WECHAT, ProviderKind.WECHAT_MINI_PROGRAM):
        return f"微信用户_{identity.subject[-6:]}"
    if identity.email:
        return identity.email.split("@", 1)[0]
    return f"user_{identity.subject[-6:]}"


class IdentityResolver:
    """
    身份解析与绑定管理。
    """

    def __init__(
        self, user_repo: UserRepository, binding_repo: ProviderBindingRepository
    ):
        self.user_repo = user_repo
        self.binding_repo = binding_repo

    # --------------------------------------------------------------------------
    # 解析 (Resolve)
    # --------------------------------------------------------------------------

    async def resolve(
        self,
        identity: ExternalIdentity,
        *,
        allow_create: bool = True,
        profile: ProfileHints | None = None,
    ) -> Resolution:
        resolution = await self._resolve(
            identity, allow_create=allow_create, profile=profile
        )

        # 5. 封禁关卡
        if resolution.user.is_banned:
            raise AppException(AuthError.USER_BANNED)

        logger.bind(
            user_id=resolution.user.id,
            provider=identity.provider.value,
            subject=mask_subject(identity.subject),
            outcome=resolution.outcome.value,
        ).info("External identity resolved")
        return resolution

    async def register_mini_program(
        self, identity: ExternalIdentity, profile: ProfileHints
    ) -> Resolution:
        """
        小程序注册：openid 已绑定视为重复注册；
        否则按常规流程解析 (union_id 命中时关联到已有用户)。
        """
        if await self.binding_repo.get_by_subject(identity.provider, identity.subject):
            raise AppException(UserError.USER_ALREADY_EXISTS)
        return await self.resolve(identity, profile=profile)

    async def _resolve(
        self,
        identity: ExternalIdentity,
        *,
        allow_create: bool,
        profile: ProfileHints | None,
    ) -> Resolution:
        # 1. 同渠道精确命中
        binding = await self.binding_repo.get_by_subject(
            identity.provider, identity.subject
        )
        if binding is not None:
            owner = await self._owner(binding.user_id)
            return Resolution(owner, ResolutionOutcome.EXISTING)

        # 2. 跨端关联 (union_id)
        if identity.union_id:
            linked = await self.binding_repo.get_by_union_id(identity.union_id)
            if linked is not None:
                owner = await self._owner(linked.user_id)
                await self._link(owner, identity)
                return Resolution(owner, ResolutionOutcome.LINKED)

        if not allow_create:
            raise AppException(UserError.USER_NOT_FOUND)

        # 3. 唯一性冲突检查
        email = (profile.email if profile and profile.email else None) or identity.email
        phone = profile.phone if profile else None
        if email and await self.user_repo.email_taken(email):
            raise AppException(UserError.EMAIL_ALREADY_EXISTS)
        if phone and await self.user_repo.phone_taken(phone):
            raise AppException(UserError.PHONE_ALREADY_EXISTS)

        # 4. 新建用户 + 绑定
        user = await self._provision(identity, profile, email=email, phone=phone)
        await self.binding_repo.create_binding(user.id, identity)
        return Resolution(user, ResolutionOutcome.CREATED)

    async def _owner(self, user_id: int) -> User:
        owner = await self.user_repo.get_active(user_id)
        if owner is None:
            # 绑定仍在但账号已注销
            raise AppException(UserError.USER_NOT_FOUND)
        return owner

    async def _link(self, owner: User, identity: ExternalIdentity) -> None:
        """
        为 union_id 命中的用户追加当前渠道绑定。
        该用户在此渠道已有绑定 (同一开放平台下的另一个应用) 时不再重复创建。
        """
        existing = await self.binding_repo.get_for_user(owner.id, identity.provider)
        if existing is not None:
            logger.bind(
                user_id=owner.id, provider=identity.provider.value
            ).warning("Union id matched but provider already bound, skip linking")
            return
        await self.binding_repo.create_binding(owner.id, identity)

    async def _provision(
        self,
        identity: ExternalIdentity,
        profile: ProfileHints | None,
        *,
        email: str | None,
        phone: str | None,
    ) -> User:
        hints = profile or ProfileHints()
        user = User(
            email=email,
            # 仅当渠道明确声明已验证且邮箱来自渠道本身时才视为已验证
            is_email_verified=bool(
                identity.email_verified and email and email == identity.email
            ),
            phone=phone,
            name=hints.name or identity.name or default_display_name(identity),
            avatar_url=hints.avatar_url or identity.avatar_url,
            birth_date=hints.birth_date,
            locale=hints.locale or identity.locale or settings.DEFAULT_LOCALE,
        )
        if hints.gender:
            user.gender = hints.gender

        try:
            return await self.user_repo.add(user)
        except IntegrityError as exc:
            await self.user_repo.session.rollback()
            raise AppException(UserError.USER_ALREADY_EXISTS, cause=exc) from exc

    # --------------------------------------------------------------------------
    # 绑定 / 解绑 (Bind / Unbind)
    # --------------------------------------------------------------------------

    async def bind(
        self, user_id: int, actor: User, identity: ExternalIdentity
    ) -> None:
        # 越权检查先于任何查询
        if actor.id != user_id:
            raise AppException(UserError.PERMISSION_DENIED)

        if await self.binding_repo.get_by_subject(identity.provider, identity.subject):
            raise AppException(IdentityError.PROVIDER_ALREADY_BOUND)

        if await self.binding_repo.get_for_user(user_id, identity.provider):
            raise AppException(IdentityError.PROVIDER_ALREADY_BOUND)

        # 同一 union_id 只能归属一个用户
        if identity.union_id:
            linked = await self.binding_repo.get_by_union_id(identity.union_id)
            if linked is not None and linked.user_id != user_id:
                logger.bind(
                    user_id=user_id, owner_id=linked.user_id
                ).warning("Union id already belongs to another user")
                raise AppException(
                    IdentityError.PROVIDER_ALREADY_BOUND,
                    message="该微信账号已关联其他用户",
                )

        await self.binding_repo.create_binding(user_id, identity)

        logger.bind(
            user_id=user_id,
            provider=identity.provider.value,
            subject=mask_subject(identity.subject),
        ).info("Provider bound")

    async def unbind(self, user_id: int, actor: User, provider: ProviderKind) -> None:
        if actor.id != user_id:
            raise AppException(UserError.PERMISSION_DENIED)

        binding = await self.binding_repo.get_for_user(user_id, provider)
        if binding is None:
            raise AppException(IdentityError.PROVIDER_NOT_BOUND)

        # 防锁死：没有已验证邮箱就没有找回通道
        if not actor.is_email_verified:
            raise AppException(IdentityError.EMAIL_NOT_VERIFIED)

        await self.binding_repo.delete(binding)

        logger.bind(user_id=user_id, provider=provider.value).info("Provider unbound")
