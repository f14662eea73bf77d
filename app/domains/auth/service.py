"""
File: app/domains/auth/service.py
Description: 认证领域服务 (Session Orchestrator)

本模块编排所有登录入口，统一执行顺序：
参数校验 (Pydantic) -> 第三方适配 (OAuth) -> 身份解析 -> 封禁检查
-> 提交事务 -> 签发令牌 -> 更新最后登录时间 (尽力而为，失败只记日志)

1. 密码注册 / 登录
2. 刷新令牌: 校验 JWT -> 原子消费 Redis 中的 jti (轮换) -> 重新查库
3. 登出: 吊销 Refresh Token
4. 小程序注册 / 登录、微信 / Google 授权码登录
5. 第三方渠道绑定 / 解绑

Created: 2026-03-06
"""

from datetime import UTC, datetime, timedelta

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.config import settings
from app.core.error_code import SystemErrorCode
from app.core.exceptions import AppException
from app.core.logging import logger
from app.core.security import (
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash_async,
    verify_password_async,
)
from app.db.models.provider_binding import ProviderKind
from app.db.models.user import User
from app.domains.auth.constants import AuthError
from app.domains.auth.schemas import LoginRequest, OAuthToken, Token
from app.domains.identity.schemas import ProfileHints
from app.domains.identity.service import IdentityResolver
from app.domains.oauth.schemas import (
    GoogleOAuthRequest,
    MiniProgramCredential,
    ProviderCredential,
    WechatOAuthRequest,
)
from app.domains.oauth.service import ProviderGateway
from app.domains.users.constants import UserError
from app.domains.users.repository import UserRepository
from app.domains.users.schemas import UserRegister
from app.domains.verification.recovery import RecoveryService
from app.utils.masking import mask_email


def refresh_token_key(jti: str) -> str:
    return f"refresh_token:{jti}"


class AuthService:
    """
    认证服务类。
    """

    def __init__(
        self,
        user_repo: UserRepository,
        resolver: IdentityResolver,
        gateway: ProviderGateway,
        redis: Redis,
        recovery: RecoveryService,
    ):
        self.user_repo = user_repo
        self.resolver = resolver
        self.gateway = gateway
        self.redis = redis
        self.recovery = recovery

    # --------------------------------------------------------------------------
    # 密码注册 / 登录
    # --------------------------------------------------------------------------

    async def register_with_password(self, data: UserRegister) -> User:
        """
        邮箱密码注册。
        注册成功后尽力发送一封验证邮件，发送失败不影响注册结果。
        """
        if await self.user_repo.email_taken(data.email):
            raise AppException(UserError.EMAIL_ALREADY_EXISTS)
        if data.phone and await self.user_repo.phone_taken(data.phone):
            raise AppException(UserError.PHONE_ALREADY_EXISTS)

        hashed_password = await get_password_hash_async(data.password)
        profile = data.model_dump(exclude={"password"}, exclude_none=True)
        profile.setdefault("name", data.email.split("@", 1)[0])
        profile.setdefault("locale", settings.DEFAULT_LOCALE)

        try:
            user = await self.user_repo.add(
                User(**profile, hashed_password=hashed_password)
            )
            await self.user_repo.session.commit()
        except IntegrityError as exc:
            await self.user_repo.session.rollback()
            raise AppException(UserError.USER_ALREADY_EXISTS, cause=exc) from exc

        logger.bind(user_id=user.id, email=mask_email(data.email)).info(
            "User registered with password"
        )

        try:
            await self.recovery.send_email_verification(data.email)
        except AppException as exc:
            logger.bind(user_id=user.id, error_code=exc.code).warning(
                "Verification email after registration not sent"
            )
        except (RedisError, OSError) as exc:
            logger.bind(user_id=user.id).opt(exception=exc).warning(
                "Verification email after registration not sent"
            )

        return user

    async def login_with_password(self, login_data: LoginRequest) -> Token:
        """
        密码登录。
        用户不存在 / 未设置密码 / 密码错误统一返回 invalid_credentials，
        封禁检查在密码校验之后。
        """
        user = await self.user_repo.get_by_email_or_phone(login_data.email_or_phone)
        if user is None:
            raise AppException(AuthError.INVALID_CREDENTIALS)

        if not await verify_password_async(login_data.password, user.hashed_password):
            raise AppException(AuthError.INVALID_CREDENTIALS)

        if user.is_banned:
            raise AppException(AuthError.USER_BANNED)

        token = await self._issue_tokens(user)
        await self._touch_last_login(user)
        return token

    # --------------------------------------------------------------------------
    # 刷新 / 登出
    # --------------------------------------------------------------------------

    async def refresh_token(self, refresh_token: str) -> Token:
        payload = decode_token(refresh_token, TokenType.REFRESH)
        if not payload.jti:
            raise AppException(SystemErrorCode.INVALID_TOKEN)

        # 一次性使用：并发刷新只有一个请求能取到
        owner = await self.redis.getdel(refresh_token_key(payload.jti))
        if owner is None:
            raise AppException(
                SystemErrorCode.INVALID_TOKEN, message="Refresh token 已失效"
            )

        user = await self.user_repo.get_active(payload.user_id)
        if user is None:
            raise AppException(SystemErrorCode.INVALID_TOKEN)
        if user.is_banned:
            raise AppException(AuthError.USER_BANNED)

        token = await self._issue_tokens(user)
        await self._touch_last_login(user)
        return token

    async def logout(self, refresh_token: str) -> None:
        payload = decode_token(refresh_token, TokenType.REFRESH)
        if payload.jti:
            await self.redis.delete(refresh_token_key(payload.jti))
        logger.bind(user_id=payload.user_id).info("User logged out")

    # --------------------------------------------------------------------------
    # 微信小程序
    # --------------------------------------------------------------------------

    async def register_mini_program(
        self, credential: MiniProgramCredential, profile: ProfileHints
    ) -> User:
        identity = await self.gateway.authenticate(credential)
        resolution = await self.resolver.register_mini_program(identity, profile)
        await self.user_repo.session.commit()
        return resolution.user

    async def login_mini_program(self, credential: MiniProgramCredential) -> Token:
        identity = await self.gateway.authenticate(credential)
        resolution = await self.resolver.resolve(identity, allow_create=False)
        await self.user_repo.session.commit()

        token = await self._issue_tokens(resolution.user)
        await self._touch_last_login(resolution.user)
        return token

    # --------------------------------------------------------------------------
    # 授权码登录 (Google / 微信)
    # --------------------------------------------------------------------------

    async def exchange_google(self, request: GoogleOAuthRequest) -> OAuthToken:
        return await self._exchange(request)

    async def exchange_wechat(self, request: WechatOAuthRequest) -> OAuthToken:
        return await self._exchange(request)

    async def _exchange(self, credential: ProviderCredential) -> OAuthToken:
        identity = await self.gateway.authenticate(credential)
        resolution = await self.resolver.resolve(identity)
        await self.user_repo.session.commit()

        token = await self._issue_tokens(resolution.user)
        await self._touch_last_login(resolution.user)
        return OAuthToken(**token.model_dump(), is_new_user=resolution.is_new_user)

    # --------------------------------------------------------------------------
    # 绑定 / 解绑
    # --------------------------------------------------------------------------

    async def bind_provider(
        self,
        user_id: int,
        actor: User,
        credential: GoogleOAuthRequest | WechatOAuthRequest,
    ) -> None:
        # 越权请求不应触发第三方调用
        if actor.id != user_id:
            raise AppException(UserError.PERMISSION_DENIED)

        identity = await self.gateway.authenticate(credential)
        await self.resolver.bind(user_id, actor, identity)
        await self.user_repo.session.commit()

    async def unbind_provider(
        self, user_id: int, actor: User, provider: ProviderKind
    ) -> None:
        await self.resolver.unbind(user_id, actor, provider)
        await self.user_repo.session.commit()

    # --------------------------------------------------------------------------
    # 内部方法
    # --------------------------------------------------------------------------

    async def _issue_tokens(self, user: User) -> Token:
        access_token = create_access_token(user.id, user.role)
        refresh_token, jti = create_refresh_token(user.id, user.role)

        await self.redis.setex(
            refresh_token_key(jti),
            timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            str(user.id),
        )

        return Token(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    async def _touch_last_login(self, user: User) -> None:
        user.last_login_at = datetime.now(UTC)
        try:
            await self.user_repo.session.commit()
        except SQLAlchemyError as exc:
            await self.user_repo.session.rollback()
            logger.bind(user_id=user.id).opt(exception=exc).warning(
                "Failed to update last login time"
            )
