"""
File: app/core/security.py
Description: 安全工具模块 (bcrypt + JWT)

本模块负责：
1. 密码加密 / 验证: bcrypt (cost factor 由 PASSWORD_HASH_ROUNDS 配置)
2. 会话令牌签发: Access Token / Refresh Token (HS256，共享密钥，token_type 区分)
3. 会话令牌校验: 签名、过期时间、令牌类型三项校验，纯计算无 I/O
4. 异步封装: 针对 CPU 密集型的哈希操作提供 async 支持

Created: 2026-03-02
"""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from jose import JWTError, jwt
from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.error_code import SystemErrorCode
from app.core.exceptions import AppException

password_hash = PasswordHash((BcryptHasher(rounds=settings.PASSWORD_HASH_ROUNDS),))

# ------------------------------------------------------------------------------
# 1. 密码处理 (Password Hashing)
# ------------------------------------------------------------------------------


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    验证明文密码与哈希值是否匹配。

    未设置密码 (第三方登录创建的账号) 与密码错误返回相同结果，
    由上层统一转换为 invalid_credentials。
    """
    if not hashed_password:
        return False
    return password_hash.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """生成 bcrypt 密码哈希值"""
    return password_hash.hash(password)


async def verify_password_async(
    plain_password: str, hashed_password: str | None
) -> bool:
    """异步验证密码（在线程池中执行，避免阻塞事件循环）"""
    return await run_in_threadpool(verify_password, plain_password, hashed_password)


async def get_password_hash_async(password: str) -> str:
    """异步生成密码哈希（在线程池中执行，避免阻塞事件循环）"""
    return await run_in_threadpool(get_password_hash, password)


# ------------------------------------------------------------------------------
# 2. JWT 处理 (Session Tokens)
# ------------------------------------------------------------------------------


class TokenType(StrEnum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class TokenPayload:
    """校验通过后的令牌声明"""

    user_id: int
    role: str
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime
    jti: str | None = None


def _secret_key() -> str:
    secret_key = settings.SECRET_KEY
    if secret_key is None:
        raise ValueError("SECRET_KEY configuration is missing.")
    return secret_key


def _encode(
    user_id: int,
    role: str,
    token_type: TokenType,
    expires_delta: timedelta,
    jti: str | None = None,
) -> str:
    now = datetime.now(UTC)
    to_encode: dict[str, object] = {
        "user_id": user_id,
        "role": role,
        "token_type": token_type.value,
        "iat": now,
        "exp": now + expires_delta,
    }
    if jti:
        to_encode["jti"] = jti
    return jwt.encode(to_encode, _secret_key(), algorithm=settings.ALGORITHM)


def create_access_token(
    user_id: int, role: str, expires_delta: timedelta | None = None
) -> str:
    """
    生成 Access Token (短效，无状态)。

    Args:
        user_id: 用户 ID
        role: 用户角色 (user / admin)
        expires_delta: 自定义有效期，默认 ACCESS_TOKEN_EXPIRE_MINUTES
    """
    return _encode(
        user_id,
        role,
        TokenType.ACCESS,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(
    user_id: int, role: str, expires_delta: timedelta | None = None
) -> tuple[str, str]:
    """
    生成 Refresh Token (长效)。

    Returns:
        (token, jti): jti 用于在 Redis 中登记，实现一次性轮换与登出吊销
    """
    jti = secrets.token_urlsafe(24)
    token = _encode(
        user_id,
        role,
        TokenType.REFRESH,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        jti=jti,
    )
    return token, jti


def decode_token(token: str, expected_type: TokenType) -> TokenPayload:
    """
    校验并解析会话令牌。

    签名错误、过期、缺少声明、令牌类型与期望不符均抛出 invalid_token (401)。
    """
    try:
        payload = jwt.decode(token, _secret_key(), algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        # from None 截断异常链，避免暴露 jose 细节
        raise AppException(SystemErrorCode.INVALID_TOKEN, cause=exc) from None

    if payload.get("token_type") != expected_type.value:
        raise AppException(
            SystemErrorCode.INVALID_TOKEN,
            message=f"令牌类型错误，需要 {expected_type.value} token",
        )

    user_id = payload.get("user_id")
    role = payload.get("role")
    issued_at = payload.get("iat")
    expires_at = payload.get("exp")
    if (
        not isinstance(user_id, int)
        or not isinstance(role, str)
        or not isinstance(issued_at, int | float)
        or not isinstance(expires_at, int | float)
    ):
        raise AppException(SystemErrorCode.INVALID_TOKEN, message="令牌缺少必要声明")

    return TokenPayload(
        user_id=user_id,
        role=role,
        token_type=expected_type,
        issued_at=datetime.fromtimestamp(issued_at, UTC),
        expires_at=datetime.fromtimestamp(expires_at, UTC),
        jti=payload.get("jti"),
    )
