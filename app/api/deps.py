"""
File: app/api/deps.py
Description: 全局依赖注入定义 (DB Session + Authentication)

本模块负责：
1. 数据库会话管理 (get_db / DBSession)
2. JWT 鉴权与用户身份提取 (get_current_user / CurrentUser)
3. 权限控制 (get_current_admin / AdminUser)

Created: 2026-03-06
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.error_code import SystemErrorCode
from app.core.exceptions import AppException
from app.core.security import TokenType, decode_token
from app.db.models.user import User
from app.db.session import AsyncSessionLocal
from app.domains.auth.constants import AuthError
from app.domains.users.constants import UserError

# ------------------------------------------------------------------------------
# 1. Database Dependencies
# ------------------------------------------------------------------------------


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取异步数据库会话依赖。
    使用 async with 确保请求结束时自动关闭 session。
    """
    async with AsyncSessionLocal() as session:
        yield session


# 数据库会话依赖类型别名
DBSession = Annotated[AsyncSession, Depends(get_db)]


# ------------------------------------------------------------------------------
# 2. Authentication Dependencies (JWT 鉴权)
# ------------------------------------------------------------------------------


async def get_token_from_header(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """
    从 Authorization Header 提取 Bearer Token。
    格式要求: Authorization: Bearer <token>
    """
    if not authorization:
        raise AppException(
            SystemErrorCode.UNAUTHORIZED, message="Missing Authorization Header"
        )

    scheme, _, param = authorization.partition(" ")
    if scheme.lower() != "bearer" or not param:
        raise AppException(
            SystemErrorCode.UNAUTHORIZED, message="Invalid Authentication Scheme"
        )

    return param


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_header)],
    session: DBSession,
) -> User:
    """
    解析 Access Token 并获取当前登录用户。

    流程:
    1. 校验签名、有效期与令牌类型 (refresh token 不能用于访问接口)
    2. 查库确认用户存在且未软删除
    3. 封禁用户即使持有未过期令牌也拒绝访问
    """
    payload = decode_token(token, TokenType.ACCESS)

    user = await session.get(User, payload.user_id)
    if user is None or user.is_deleted:
        raise AppException(SystemErrorCode.INVALID_TOKEN, message="User not found")

    if user.is_banned:
        raise AppException(AuthError.USER_BANNED)

    return user


# ------------------------------------------------------------------------------
# 3. Permission Dependencies (权限控制)
# ------------------------------------------------------------------------------

# 已登录用户依赖
# 用法: async def endpoint(user: CurrentUser): ...
CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_current_admin(current_user: CurrentUser) -> User:
    """
    管理员权限校验。
    """
    if not current_user.is_admin:
        raise AppException(UserError.PERMISSION_DENIED)
    return current_user


# 管理员依赖
AdminUser = Annotated[User, Depends(get_current_admin)]
