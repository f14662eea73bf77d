"""
File: tests/integration/test_auth_router.py
Description: 认证接口集成测试 (密码账号 / 会话 / 小程序)

测试范围：
1. 注册 -> 登录 -> 刷新 -> 登出 全链路
2. 统一响应信封与稳定错误码
3. Access Token 鉴权依赖 (缺失 / 类型错误 / 封禁)
4. 小程序网关请求头注册与登录

Created: 2026-03-07
"""

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.core.email import EmailKind
from app.db.models.provider_binding import ProviderKind
from app.domains.identity.schemas import ExternalIdentity

AUTH = f"{settings.API_V1_STR}/auth"
USERS = f"{settings.API_V1_STR}/users"
PASSWORD = "correct-horse-battery"


async def login(client: AsyncClient, identifier: str, password: str = PASSWORD):
    return await client.post(
        f"{AUTH}/login", json={"email_or_phone": identifier, "password": password}
    )


# ------------------------------------------------------------------------------
# 注册
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_register_success(client: AsyncClient, email_outbox) -> None:
    response = await client.post(
        f"{AUTH}/register",
        json={"email": "carol@example.com", "password": PASSWORD, "locale": "zh"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["error"] is None
    assert isinstance(body["data"]["id"], int)
    assert body["request_id"] == response.headers["X-Request-ID"]

    mail = email_outbox.sent[-1]
    assert mail["to"] == "carol@example.com"
    assert mail["kind"] == EmailKind.EMAIL_VERIFICATION
    assert mail["locale"] == "zh"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, make_user) -> None:
    await make_user(email="carol@example.com")

    response = await client.post(
        f"{AUTH}/register", json={"email": "carol@example.com", "password": PASSWORD}
    )

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "email_already_exists"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"email": "not-an-email", "password": PASSWORD},
        {"email": "carol@example.com", "password": "short"},
        {"email": "carol@example.com", "password": PASSWORD, "phone": "13800000000"},
        {"email": "carol@example.com", "password": PASSWORD, "locale": "fr"},
    ],
)
async def test_register_validation(client: AsyncClient, payload: dict) -> None:
    response = await client.post(f"{AUTH}/register", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_params"


# ------------------------------------------------------------------------------
# 登录 / 刷新 / 登出
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_login_refresh_logout_flow(client: AsyncClient, make_user) -> None:
    await make_user()

    # 1. 登录
    response = await login(client, "alice@example.com")
    assert response.status_code == 200
    tokens = response.json()["data"]
    assert tokens["token_type"] == "Bearer"
    assert tokens["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    # 2. Access Token 可访问受保护接口
    me = await client.get(
        f"{USERS}/me", headers={"Authorization": f"Bearer {tokens['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "alice@example.com"
    assert "hashed_password" not in me.json()["data"]

    # 3. 刷新 (轮换)
    refreshed = await client.post(
        f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert refreshed.status_code == 200
    new_tokens = refreshed.json()["data"]

    replay = await client.post(
        f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert replay.status_code == 401
    assert replay.json()["error"] == "invalid_token"

    # 4. 登出后新 refresh token 也失效
    logout = await client.post(
        f"{AUTH}/logout", json={"refresh_token": new_tokens["refresh_token"]}
    )
    assert logout.status_code == 200

    after_logout = await client.post(
        f"{AUTH}/refresh", json={"refresh_token": new_tokens["refresh_token"]}
    )
    assert after_logout.status_code == 401


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, make_user) -> None:
    await make_user()

    response = await login(client, "alice@example.com", "wrong-password")

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_login_unknown_user_same_error(client: AsyncClient) -> None:
    response = await login(client, "ghost@example.com")

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_login_banned_user(client: AsyncClient, make_user) -> None:
    await make_user(banned=True)

    response = await login(client, "alice@example.com")

    assert response.status_code == 403
    assert response.json()["error"] == "user_banned"


# ------------------------------------------------------------------------------
# 鉴权依赖
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_missing_authorization_header(client: AsyncClient) -> None:
    response = await client.get(f"{USERS}/me")

    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


@pytest.mark.asyncio
async def test_wrong_auth_scheme(client: AsyncClient) -> None:
    response = await client.get(f"{USERS}/me", headers={"Authorization": "Basic abc"})

    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


@pytest.mark.asyncio
async def test_refresh_token_cannot_access_api(client: AsyncClient, make_user) -> None:
    await make_user()
    tokens = (await login(client, "alice@example.com")).json()["data"]

    response = await client.get(
        f"{USERS}/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"


@pytest.mark.asyncio
async def test_banned_user_token_rejected(
    client: AsyncClient, make_user, auth_headers
) -> None:
    user = await make_user(banned=True)

    response = await client.get(f"{USERS}/me", headers=auth_headers(user))

    assert response.status_code == 403
    assert response.json()["error"] == "user_banned"


@pytest.mark.asyncio
async def test_deleted_user_token_rejected(
    client: AsyncClient, make_user, auth_headers
) -> None:
    user = await make_user(deleted=True)

    response = await client.get(f"{USERS}/me", headers=auth_headers(user))

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"


# ------------------------------------------------------------------------------
# 微信小程序
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_mini_program_register_and_login(client: AsyncClient) -> None:
    headers = {"x-wx-openid": "o-mini-1", "x-wx-unionid": "u-1"}

    registered = await client.post(
        f"{AUTH}/wxmini/register",
        json={"name": "小明", "locale": "zh"},
        headers=headers,
    )
    assert registered.status_code == 201
    user_id = registered.json()["data"]["id"]

    duplicate = await client.post(
        f"{AUTH}/wxmini/register", json={}, headers=headers
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "user_already_exists"

    logged_in = await client.post(f"{AUTH}/wxmini/login", headers=headers)
    assert logged_in.status_code == 200
    access_token = logged_in.json()["data"]["access_token"]

    me = await client.get(
        f"{USERS}/me", headers={"Authorization": f"Bearer {access_token}"}
    )
    assert me.json()["data"]["id"] == user_id
    assert me.json()["data"]["name"] == "小明"


@pytest.mark.asyncio
async def test_mini_program_login_unregistered(client: AsyncClient) -> None:
    response = await client.post(
        f"{AUTH}/wxmini/login", headers={"x-wx-openid": "o-unknown"}
    )

    assert response.status_code == 404
    assert response.json()["error"] == "user_not_found"


@pytest.mark.asyncio
async def test_mini_program_missing_openid(client: AsyncClient) -> None:
    response = await client.post(f"{AUTH}/wxmini/login")

    assert response.status_code == 400
    assert response.json()["error"] == "openid_not_provided"


@pytest.mark.asyncio
async def test_mini_program_register_email_conflict(
    client: AsyncClient, make_user
) -> None:
    await make_user()

    response = await client.post(
        f"{AUTH}/wxmini/register",
        json={"email": "alice@example.com"},
        headers={"x-wx-openid": "o-mini-2"},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "email_already_exists"


@pytest.mark.asyncio
async def test_mini_program_login_banned_user(
    client: AsyncClient, make_user, binding_repo
) -> None:
    user = await make_user(banned=True)
    await binding_repo.create_binding(
        user.id,
        ExternalIdentity(provider=ProviderKind.WECHAT_MINI_PROGRAM, subject="o-mini-3"),
    )
    await binding_repo.session.commit()

    response = await client.post(
        f"{AUTH}/wxmini/login", headers={"x-wx-openid": "o-mini-3"}
    )

    assert response.status_code == 403
    assert response.json()["error"] == "user_banned"
