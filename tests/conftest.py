"""
File: tests/conftest.py
Description: Pytest 全局 Fixtures 配置 (Async + 内存数据库 + Fake Redis + Mock 第三方)

1. 在导入 app 之前写入测试环境变量 (SQLite 内存库、低 bcrypt cost、OAuth 测试凭证)
2. 每个测试独立的 sqlite+aiosqlite 引擎 (StaticPool 共享同一连接)
3. fakeredis 替代 Redis；RecordingEmailSender 记录邮件而非投递
4. httpx.MockTransport 模拟 Google / 微信接口
5. 覆写 FastAPI 依赖：get_db / get_redis / get_email_sender / get_http_client

Created: 2026-03-07
"""

import asyncio
import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any
from urllib.parse import parse_qs

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# ------------------------------------------------------------------------------
# 1. 环境配置 (必须在导入 app 之前)
# ------------------------------------------------------------------------------
os.environ.update(
    {
        "SECRET_KEY": "test-secret-key-for-identity-hub-0123456789",
        "SQLALCHEMY_DATABASE_URI": "sqlite+aiosqlite://",
        "PASSWORD_HASH_ROUNDS": "4",
        "EMAIL_PROVIDER": "log",
        "GOOGLE_WEB_CLIENT_ID": "web-client-id",
        "GOOGLE_WEB_CLIENT_SECRET": "web-client-secret",
        "GOOGLE_WEB_REDIRECT_URLS": '["https://app.example.com/oauth/google"]',
        "GOOGLE_IOS_CLIENT_ID": "ios-client-id",
        "GOOGLE_IOS_CLIENT_SECRET": "ios-client-secret",
        "GOOGLE_IOS_REDIRECT_URLS": '["com.example.app:/oauth2redirect"]',
        "WECHAT_WEB_APPID": "wx-web-appid",
        "WECHAT_WEB_SECRET": "wx-web-secret",
        "WECHAT_APP_APPID": "wx-app-appid",
        "WECHAT_APP_SECRET": "wx-app-secret",
    }
)

import fakeredis
import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.config import settings
from app.core.email import EmailKind, get_email_sender
from app.core.error_code import SystemErrorCode
from app.core.exceptions import AppException
from app.core.http_client import get_http_client
from app.core.redis import get_redis
from app.core.security import create_access_token, get_password_hash
from app.db.models import Base, ProviderBinding, User
from app.domains.auth.service import AuthService
from app.domains.identity.repository import ProviderBindingRepository
from app.domains.identity.service import IdentityResolver
from app.domains.oauth.google import GoogleOAuthClient
from app.domains.oauth.service import ProviderGateway
from app.domains.oauth.wechat import WechatOAuthClient
from app.domains.users.repository import UserRepository
from app.domains.users.service import UserService
from app.domains.verification.recovery import RecoveryService
from app.domains.verification.service import VerificationService
from app.domains.verification.store import RedisCodeStore
from app.main import app

# ------------------------------------------------------------------------------
# 2. 测试替身 (Test Doubles)
# ------------------------------------------------------------------------------


class RecordingEmailSender:
    """记录所有邮件；fail=True 时模拟投递失败"""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = False

    async def send(
        self,
        to: str,
        kind: EmailKind,
        variables: dict[str, str],
        locale: str | None = None,
    ) -> None:
        if self.fail:
            raise AppException(SystemErrorCode.EMAIL_DELIVERY_FAILED)
        self.sent.append(
            {"to": to, "kind": kind, "variables": variables, "locale": locale}
        )

    def last_code(self, to: str, kind: EmailKind) -> str:
        for mail in reversed(self.sent):
            if mail["to"] == to and mail["kind"] == kind:
                return mail["variables"]["code"]
        raise AssertionError(f"no {kind} email sent to {to}")


def _base_url(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


class FakeProviders:
    """
    模拟 Google / 微信 OAuth 接口。

    google_users: 授权码 -> Google userinfo 资料
    wechat_users: 授权码 -> 微信 code2token 响应 (openid / unionid)
    errors: URL -> 抛出的 httpx 异常 (模拟超时 / 网络错误)
    responses: URL -> 固定响应 (模拟异常响应体)
    """

    def __init__(self) -> None:
        self.google_users: dict[str, dict[str, Any]] = {}
        self.wechat_users: dict[str, dict[str, Any]] = {}
        self.errors: dict[str, Exception] = {}
        self.responses: dict[str, httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = _base_url(request)

        if url in self.errors:
            raise self.errors[url]
        if url in self.responses:
            return self.responses[url]

        if url == settings.GOOGLE_TOKEN_URL:
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            code = form.get("code", "")
            if code not in self.google_users:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(
                200,
                json={
                    "access_token": f"ya29.{code}",
                    "expires_in": 3599,
                    "token_type": "Bearer",
                },
            )

        if url == settings.GOOGLE_USERINFO_URL:
            token = request.headers.get("Authorization", "").removeprefix("Bearer ")
            code = token.removeprefix("ya29.")
            if code not in self.google_users:
                return httpx.Response(401, json={"error": "invalid_token"})
            return httpx.Response(200, json=self.google_users[code])

        if url == settings.WECHAT_OAUTH_TOKEN_URL:
            code = request.url.params.get("code", "")
            if code not in self.wechat_users:
                return httpx.Response(
                    200, json={"errcode": 40029, "errmsg": "invalid code"}
                )
            return httpx.Response(
                200,
                json={
                    "access_token": f"wx-access-{code}",
                    "expires_in": 7200,
                    "refresh_token": f"wx-refresh-{code}",
                    "scope": "snsapi_login",
                    **self.wechat_users[code],
                },
            )

        return httpx.Response(404)

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if _base_url(r) == url]


# ------------------------------------------------------------------------------
# 3. 基础设施 Fixtures
# ------------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def redis() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def email_outbox() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest_asyncio.fixture
async def http_client(
    providers: FakeProviders,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(providers.handler)
    ) as client:
        yield client


# ------------------------------------------------------------------------------
# 4. 服务 Fixtures
# ------------------------------------------------------------------------------


@pytest.fixture
def user_repo(db_session: AsyncSession) -> UserRepository:
    return UserRepository(model=User, session=db_session)


@pytest.fixture
def binding_repo(db_session: AsyncSession) -> ProviderBindingRepository:
    return ProviderBindingRepository(model=ProviderBinding, session=db_session)


@pytest.fixture
def resolver(
    user_repo: UserRepository, binding_repo: ProviderBindingRepository
) -> IdentityResolver:
    return IdentityResolver(user_repo=user_repo, binding_repo=binding_repo)


@pytest.fixture
def codes(redis: fakeredis.FakeAsyncRedis) -> VerificationService:
    return VerificationService(store=RedisCodeStore(redis))


@pytest.fixture
def recovery(
    user_repo: UserRepository,
    codes: VerificationService,
    email_outbox: RecordingEmailSender,
) -> RecoveryService:
    return RecoveryService(user_repo=user_repo, codes=codes, email_sender=email_outbox)


@pytest.fixture
def gateway(http_client: httpx.AsyncClient) -> ProviderGateway:
    return ProviderGateway(
        google=GoogleOAuthClient(
            http=http_client,
            clients=settings.google_clients(),
            token_url=settings.GOOGLE_TOKEN_URL,
            userinfo_url=settings.GOOGLE_USERINFO_URL,
        ),
        wechat=WechatOAuthClient(
            http=http_client,
            clients=settings.wechat_clients(),
            token_url=settings.WECHAT_OAUTH_TOKEN_URL,
        ),
    )


@pytest.fixture
def auth_service(
    user_repo: UserRepository,
    resolver: IdentityResolver,
    gateway: ProviderGateway,
    redis: fakeredis.FakeAsyncRedis,
    recovery: RecoveryService,
) -> AuthService:
    return AuthService(
        user_repo=user_repo,
        resolver=resolver,
        gateway=gateway,
        redis=redis,
        recovery=recovery,
    )


@pytest.fixture
def user_service(
    user_repo: UserRepository, binding_repo: ProviderBindingRepository
) -> UserService:
    return UserService(repo=user_repo, binding_repo=binding_repo)


# ------------------------------------------------------------------------------
# 5. 数据构造 Fixtures
# ------------------------------------------------------------------------------

MakeUser = Callable[..., Awaitable[User]]


@pytest.fixture
def make_user(db_session: AsyncSession) -> MakeUser:
    """直接落库创建用户，便于构造各种前置状态"""

    async def _make(
        *,
        email: str | None = "alice@example.com",
        password: str | None = "correct-horse-battery",
        phone: str | None = None,
        name: str = "Alice",
        verified: bool = False,
        role: str = "user",
        banned: bool = False,
        deleted: bool = False,
        locale: str = "en",
    ) -> User:
        user = User(
            email=email,
            phone=phone,
            name=name,
            is_email_verified=verified,
            hashed_password=get_password_hash(password) if password else None,
            role=role,
            is_banned=banned,
            locale=locale,
        )
        if deleted:
            user.soft_delete()
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers


# ------------------------------------------------------------------------------
# 6. HTTP 客户端
# ------------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    redis: fakeredis.FakeAsyncRedis,
    email_outbox: RecordingEmailSender,
    http_client: httpx.AsyncClient,
) -> AsyncGenerator[AsyncClient, None]:
    """
    获取异步 HTTP 客户端，所有外部依赖均替换为测试替身。
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_redis() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
        yield redis

    async def override_get_email_sender() -> RecordingEmailSender:
        return email_outbox

    async def override_get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
        yield http_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_email_sender] = override_get_email_sender
    app.dependency_overrides[get_http_client] = override_get_http_client

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"  # type: ignore
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
