"""
File: app/domains/auth/dependencies.py
Description: 认证领域依赖注入 (DI)

依赖链：
DBSession -> UserRepository / ProviderBindingRepository -> IdentityResolver ─┐
get_http_client -> ProviderGateway ──────────────────────────────────────────┤
get_redis ───────────────────────────────────────────────────────────────────┼-> AuthService
RecoveryService ─────────────────────────────────────────────────────────────┘

Created: 2026-03-06
"""

from typing import Annotated

from fastapi import Depends

from app.api.deps import DBSession
from app.db.models.provider_binding import ProviderBinding
from app.domains.auth.service import AuthService
from app.domains.identity.repository import ProviderBindingRepository
from app.domains.identity.service import IdentityResolver
from app.domains.oauth.dependencies import ProviderGatewayDep
from app.domains.users.dependencies import UserRepoDep
from app.domains.verification.dependencies import RecoveryServiceDep, RedisDep


async def get_binding_repository(session: DBSession) -> ProviderBindingRepository:
    return ProviderBindingRepository(model=ProviderBinding, session=session)


BindingRepoDep = Annotated[ProviderBindingRepository, Depends(get_binding_repository)]


async def get_identity_resolver(
    user_repo: UserRepoDep, binding_repo: BindingRepoDep
) -> IdentityResolver:
    return IdentityResolver(user_repo=user_repo, binding_repo=binding_repo)


IdentityResolverDep = Annotated[IdentityResolver, Depends(get_identity_resolver)]


async def get_auth_service(
    user_repo: UserRepoDep,
    resolver: IdentityResolverDep,
    gateway: ProviderGatewayDep,
    redis: RedisDep,
    recovery: RecoveryServiceDep,
) -> AuthService:
    """
    构造 AuthService 实例。
    同一请求内 Repository 共享同一个数据库会话 (FastAPI 依赖缓存)。
    """
    return AuthService(
        user_repo=user_repo,
        resolver=resolver,
        gateway=gateway,
        redis=redis,
        recovery=recovery,
    )


# 类型别名：Auth 服务依赖
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
