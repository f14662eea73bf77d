"""
File: tests/integration/test_oauth_router.py
Description: 第三方登录与渠道绑定接口集成测试

1. Google / 微信授权码登录：新用户 201，老用户 200
2. 第三方错误映射：回调地址 400、微信 errcode 502
3. 绑定 / 解绑：只能操作自己，解绑前需已验证邮箱

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

VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
CHALLENGE = "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"
REDIRECT_URI = "https://app.example.com/oauth/google"


def google_payload(code: str = "g-code", **overrides: str) -> dict[str, str]:
    return {
        "code": code,
        "code_verifier": VERIFIER,
        "redirect_uri": REDIRECT_URI,
        "client_type": "web",
        **overrides,
    }


# ------------------------------------------------------------------------------
# 授权码登录
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_google_login_new_then_returning(client: AsyncClient, providers) -> None:
    providers.google_users["g-code"] = {
        "id": "g-100",
        "email": "dora@gmail.com",
        "verified_email": True,
        "name": "Dora",
    }

    first = await client.post(
        f"{AUTH}/google/token", json=google_payload(code_challenge=CHALLENGE)
    )
    assert first.status_code == 201
    assert first.json()["data"]["is_new_user"] is True

    second = await client.post(f"{AUTH}/google/token", json=google_payload())
    assert second.status_code == 200
    assert second.json()["data"]["is_new_user"] is False

    me = await client.get(
        f"{USERS}/me",
        headers={"Authorization": f"Bearer {second.json()['data']['access_token']}"},
    )
    profile = me.json()["data"]
    assert profile["email"] == "dora@gmail.com"
    assert profile["is_email_verified"] is True


@pytest.mark.asyncio
async def test_google_login_rejects_redirect(client: AsyncClient, providers) -> None:
    response = await client.post(
        f"{AUTH}/google/token",
        json=google_payload(redirect_uri="https://evil.example.com/cb"),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_redirect_url"
    assert providers.requests == []


@pytest.mark.asyncio
async def test_google_login_invalid_code(client: AsyncClient) -> None:
    response = await client.post(f"{AUTH}/google/token", json=google_payload("stale"))

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_oauth_code"


@pytest.mark.asyncio
async def test_google_login_short_verifier(client: AsyncClient) -> None:
    response = await client.post(
        f"{AUTH}/google/token", json=google_payload(code_verifier="too-short")
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_params"


@pytest.mark.asyncio
async def test_google_login_email_conflict(
    client: AsyncClient, providers, make_user
) -> None:
    await make_user(email="dora@gmail.com")
    providers.google_users["g-code"] = {"id": "g-100", "email": "dora@gmail.com"}

    response = await client.post(f"{AUTH}/google/token", json=google_payload())

    assert response.status_code == 409
    assert response.json()["error"] == "email_already_exists"


@pytest.mark.asyncio
async def test_wechat_login_new_user(client: AsyncClient, providers) -> None:
    providers.wechat_users["wx-code"] = {"openid": "o-web-1", "unionid": "u-1"}

    response = await client.post(
        f"{AUTH}/wechat/token", json={"code": "wx-code", "client_type": "web"}
    )

    assert response.status_code == 201
    assert response.json()["data"]["is_new_user"] is True


@pytest.mark.asyncio
async def test_wechat_login_upstream_error(client: AsyncClient) -> None:
    response = await client.post(
        f"{AUTH}/wechat/token", json={"code": "bad", "client_type": "app"}
    )

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "wechat_api_error"
    assert body["data"] == {"errcode": 40029, "errmsg": "invalid code"}


@pytest.mark.asyncio
async def test_wechat_login_invalid_client_type(client: AsyncClient) -> None:
    response = await client.post(
        f"{AUTH}/wechat/token", json={"code": "wx-code", "client_type": "tv"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_client_type"


# ------------------------------------------------------------------------------
# 绑定 / 解绑
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_bind_and_unbind_google(
    client: AsyncClient, providers, make_user, auth_headers
) -> None:
    user = await make_user(verified=True)
    headers = auth_headers(user)
    providers.google_users["g-code"] = {"id": "g-200", "email": "alice@gmail.com"}

    bound = await client.post(
        f"{AUTH}/users/{user.id}/google", json=google_payload(), headers=headers
    )
    assert bound.status_code == 200

    listed = await client.get(f"{USERS}/me/providers", headers=headers)
    bindings = listed.json()["data"]
    assert [b["provider"] for b in bindings] == ["google"]
    assert bindings[0]["provider_uid"] == "g-200"
    assert "access_token" not in bindings[0]

    again = await client.post(
        f"{AUTH}/users/{user.id}/google", json=google_payload(), headers=headers
    )
    assert again.status_code == 409
    assert again.json()["error"] == "provider_already_bound"

    unbound = await client.delete(f"{AUTH}/users/{user.id}/google", headers=headers)
    assert unbound.status_code == 200

    missing = await client.delete(f"{AUTH}/users/{user.id}/google", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "provider_not_bound"


@pytest.mark.asyncio
async def test_bind_for_other_user_forbidden(
    client: AsyncClient, providers, make_user, auth_headers
) -> None:
    alice = await make_user()
    bob = await make_user(email="bob@example.com")
    providers.wechat_users["wx-code"] = {"openid": "o-web-1"}

    response = await client.post(
        f"{AUTH}/users/{alice.id}/wechat",
        json={"code": "wx-code", "client_type": "web"},
        headers=auth_headers(bob),
    )

    assert response.status_code == 403
    assert response.json()["error"] == "permission_denied"
    assert providers.requests == []


@pytest.mark.asyncio
async def test_unbind_requires_verified_email(
    client: AsyncClient, providers, make_user, auth_headers
) -> None:
    user = await make_user(verified=False)
    headers = auth_headers(user)
    providers.wechat_users["wx-code"] = {"openid": "o-web-1"}

    bound = await client.post(
        f"{AUTH}/users/{user.id}/wechat",
        json={"code": "wx-code", "client_type": "web"},
        headers=headers,
    )
    assert bound.status_code == 200

    response = await client.delete(f"{AUTH}/users/{user.id}/wechat", headers=headers)

    assert response.status_code == 401
    assert response.json()["error"] == "email_not_verified"


@pytest.mark.asyncio
async def test_bind_requires_authentication(client: AsyncClient) -> None:
    response = await client.post(f"{AUTH}/users/1/google", json=google_payload())

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unbind_after_email_verified(
    client: AsyncClient, providers, make_user, auth_headers, email_outbox
) -> None:
    user = await make_user(verified=False)
    headers = auth_headers(user)
    providers.wechat_users["wx-code"] = {"openid": "o-web-1"}

    await client.post(
        f"{AUTH}/users/{user.id}/wechat",
        json={"code": "wx-code", "client_type": "web"},
        headers=headers,
    )
    blocked = await client.delete(f"{AUTH}/users/{user.id}/wechat", headers=headers)
    assert blocked.status_code == 401

    await client.post(
        f"{AUTH}/email/send-verification", json={"email": "alice@example.com"}
    )
    code = email_outbox.last_code("alice@example.com", EmailKind.EMAIL_VERIFICATION)
    verified = await client.post(
        f"{AUTH}/email/verify", json={"email": "alice@example.com", "code": code}
    )
    assert verified.status_code == 200

    unbound = await client.delete(f"{AUTH}/users/{user.id}/wechat", headers=headers)
    assert unbound.status_code == 200

    listed = await client.get(f"{USERS}/me/providers", headers=headers)
    assert listed.json()["data"] == []


@pytest.mark.asyncio
async def test_google_login_banned_user(
    client: AsyncClient, providers, make_user, binding_repo
) -> None:
    user = await make_user(banned=True)
    await binding_repo.create_binding(
        user.id, ExternalIdentity(provider=ProviderKind.GOOGLE, subject="g-100")
    )
    await binding_repo.session.commit()
    providers.google_users["g-code"] = {"id": "g-100", "email": "alice@gmail.com"}

    response = await client.post(f"{AUTH}/google/token", json=google_payload())

    assert response.status_code == 403
    assert response.json()["error"] == "user_banned"


@pytest.mark.asyncio
async def test_wechat_login_banned_user(
    client: AsyncClient, providers, make_user, binding_repo
) -> None:
    user = await make_user(banned=True)
    await binding_repo.create_binding(
        user.id,
        ExternalIdentity(provider=ProviderKind.WECHAT, subject="o-web-1", union_id="u-1"),
    )
    await binding_repo.session.commit()
    providers.wechat_users["wx-code"] = {"openid": "o-web-1", "unionid": "u-1"}

    response = await client.post(
        f"{AUTH}/wechat/token", json={"code": "wx-code", "client_type": "web"}
    )

    assert response.status_code == 403
    assert response.json()["error"] == "user_banned"
