"""
File: tests/unit/test_oauth_clients.py
Description: 第三方适配层单元测试 (Google / 微信 / 小程序 / 网关分派)

第三方接口由 conftest 中的 FakeProviders (httpx.MockTransport) 模拟。

Created: 2026-03-07
"""

import httpx
import pytest

from app.core.config import settings
from app.core.exceptions import AppException
from app.db.models.provider_binding import ProviderKind
from app.domains.oauth.pkce import compute_code_challenge
from app.domains.oauth.schemas import (
    GoogleOAuthRequest,
    MiniProgramCredential,
    WechatOAuthRequest,
)
from app.domains.oauth.service import ProviderGateway
from app.domains.oauth.wechat import mini_program_identity

VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
REDIRECT_URI = "https://app.example.com/oauth/google"

GOOGLE_PROFILE = {
    "id": "109876543210",
    "email": "alice@gmail.com",
    "verified_email": True,
    "name": "Alice G",
    "picture": "https://lh3.googleusercontent.com/a/alice",
    "locale": "de",
}


def google_request(code: str = "g-code", **overrides: str) -> GoogleOAuthRequest:
    fields = {
        "code": code,
        "code_verifier": VERIFIER,
        "redirect_uri": REDIRECT_URI,
        "client_type": "web",
        **overrides,
    }
    return GoogleOAuthRequest(**fields)


# ------------------------------------------------------------------------------
# Google
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_google_exchange_returns_identity(gateway: ProviderGateway, providers) -> None:
    providers.google_users["g-code"] = GOOGLE_PROFILE

    identity = await gateway.authenticate(google_request())

    assert identity.provider is ProviderKind.GOOGLE
    assert identity.subject == "109876543210"
    assert identity.email == "alice@gmail.com"
    assert identity.email_verified is True
    assert identity.name == "Alice G"
    assert identity.avatar_url == GOOGLE_PROFILE["picture"]
    assert identity.locale == "de"
    assert identity.access_token == "ya29.g-code"
    assert identity.expires_at is not None

    # 授权码与 verifier 原样提交给 token 端点
    token_request = providers.requests_to(settings.GOOGLE_TOKEN_URL)[0]
    form = token_request.content.decode()
    assert "code_verifier=" + VERIFIER in form
    assert "client_id=web-client-id" in form
    assert "grant_type=authorization_code" in form


@pytest.mark.asyncio
async def test_google_ios_client_uses_own_allow_list(
    gateway: ProviderGateway, providers
) -> None:
    providers.google_users["ios-code"] = GOOGLE_PROFILE

    identity = await gateway.authenticate(
        google_request(
            "ios-code",
            client_type="ios",
            redirect_uri="com.example.app:/oauth2redirect",
        )
    )
    assert identity.subject == GOOGLE_PROFILE["id"]

    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(google_request("ios-code", client_type="ios"))
    assert excinfo.value.code == "invalid_redirect_url"


@pytest.mark.asyncio
async def test_google_unknown_client_type(gateway: ProviderGateway, providers) -> None:
    """测试：未知 client_type 没有白名单，按回调地址非法拒绝"""
    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(google_request(client_type="android"))

    assert excinfo.value.code == "invalid_redirect_url"
    assert providers.requests == []


@pytest.mark.asyncio
async def test_google_redirect_not_allowed_makes_no_request(
    gateway: ProviderGateway, providers
) -> None:
    providers.google_users["g-code"] = GOOGLE_PROFILE

    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(
            google_request(redirect_uri="https://evil.example.com/callback")
        )

    assert excinfo.value.code == "invalid_redirect_url"
    assert excinfo.value.http_status == 400
    assert providers.requests == []


def test_google_validate_redirect_uri(gateway: ProviderGateway) -> None:
    assert gateway.google.validate_redirect_uri(REDIRECT_URI, "web")
    assert not gateway.google.validate_redirect_uri(REDIRECT_URI, "ios")
    assert not gateway.google.validate_redirect_uri(REDIRECT_URI, "android")


@pytest.mark.asyncio
async def test_google_pkce_mismatch_makes_no_request(
    gateway: ProviderGateway, providers
) -> None:
    providers.google_users["g-code"] = GOOGLE_PROFILE

    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(
            google_request(code_challenge=compute_code_challenge(VERIFIER + "-other"))
        )

    assert excinfo.value.code == "invalid_pkce_verifier"
    assert providers.requests == []


@pytest.mark.asyncio
async def test_google_pkce_match_proceeds(gateway: ProviderGateway, providers) -> None:
    providers.google_users["g-code"] = GOOGLE_PROFILE

    identity = await gateway.authenticate(
        google_request(code_challenge=compute_code_challenge(VERIFIER))
    )
    assert identity.subject == GOOGLE_PROFILE["id"]


@pytest.mark.asyncio
async def test_google_invalid_grant(gateway: ProviderGateway, providers) -> None:
    """测试：Google 拒绝授权码 -> 400 invalid_oauth_code，不再请求 userinfo"""
    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(google_request("expired-code"))

    assert excinfo.value.code == "invalid_oauth_code"
    assert excinfo.value.http_status == 400
    assert providers.requests_to(settings.GOOGLE_USERINFO_URL) == []


@pytest.mark.asyncio
async def test_google_timeout_is_upstream_failure(
    gateway: ProviderGateway, providers
) -> None:
    providers.google_users["g-code"] = GOOGLE_PROFILE
    providers.errors[settings.GOOGLE_TOKEN_URL] = httpx.ConnectTimeout("timed out")

    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(google_request())

    assert excinfo.value.code == "oauth_token_exchange_failed"
    assert excinfo.value.http_status == 502
    # 不自动重试
    assert len(providers.requests_to(settings.GOOGLE_TOKEN_URL)) == 1


@pytest.mark.asyncio
async def test_google_userinfo_failure(gateway: ProviderGateway, providers) -> None:
    providers.google_users["g-code"] = GOOGLE_PROFILE
    providers.errors[settings.GOOGLE_USERINFO_URL] = httpx.ConnectError("refused")

    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(google_request())

    assert excinfo.value.code == "oauth_user_info_fetch_failed"
    assert excinfo.value.http_status == 502


@pytest.mark.asyncio
async def test_google_incomplete_profile(gateway: ProviderGateway, providers) -> None:
    providers.google_users["g-code"] = {"id": "109876543210", "name": "No Email"}

    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(google_request())

    assert excinfo.value.code == "incomplete_provider_profile"


# ------------------------------------------------------------------------------
# 微信开放平台
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_wechat_exchange_returns_identity(
    gateway: ProviderGateway, providers
) -> None:
    providers.wechat_users["wx-code"] = {"openid": "o-web-1", "unionid": "u-1"}

    identity = await gateway.authenticate(
        WechatOAuthRequest(code="wx-code", client_type="web")
    )

    assert identity.provider is ProviderKind.WECHAT
    assert identity.subject == "o-web-1"
    assert identity.union_id == "u-1"
    assert identity.access_token == "wx-access-wx-code"
    # 原始响应中的令牌已脱敏
    assert identity.raw["access_token"] != "wx-access-wx-code"

    request = providers.requests_to(settings.WECHAT_OAUTH_TOKEN_URL)[0]
    assert request.url.params["appid"] == "wx-web-appid"
    assert request.url.params["grant_type"] == "authorization_code"


@pytest.mark.asyncio
async def test_wechat_app_client_uses_app_credentials(
    gateway: ProviderGateway, providers
) -> None:
    providers.wechat_users["wx-code"] = {"openid": "o-app-1"}

    identity = await gateway.authenticate(
        WechatOAuthRequest(code="wx-code", client_type="app")
    )

    assert identity.union_id is None
    request = providers.requests_to(settings.WECHAT_OAUTH_TOKEN_URL)[0]
    assert request.url.params["appid"] == "wx-app-appid"


@pytest.mark.asyncio
async def test_wechat_errcode_surfaces_upstream_error(
    gateway: ProviderGateway,
) -> None:
    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(
            WechatOAuthRequest(code="bad-code", client_type="web")
        )

    exc = excinfo.value
    assert exc.code == "wechat_api_error"
    assert exc.http_status == 502
    assert exc.data == {"errcode": 40029, "errmsg": "invalid code"}
    assert "40029" in exc.message


@pytest.mark.asyncio
async def test_wechat_unknown_client_type(gateway: ProviderGateway, providers) -> None:
    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(
            WechatOAuthRequest(code="wx-code", client_type="mini")
        )

    assert excinfo.value.code == "invalid_client_type"
    assert providers.requests == []


@pytest.mark.asyncio
async def test_wechat_timeout(gateway: ProviderGateway, providers) -> None:
    providers.errors[settings.WECHAT_OAUTH_TOKEN_URL] = httpx.ReadTimeout("slow")

    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(WechatOAuthRequest(code="c", client_type="web"))

    assert excinfo.value.code == "oauth_token_exchange_failed"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [[], "ok", 0])
async def test_wechat_non_object_body(
    gateway: ProviderGateway, providers, body
) -> None:
    providers.responses[settings.WECHAT_OAUTH_TOKEN_URL] = httpx.Response(
        200, json=body
    )

    with pytest.raises(AppException) as excinfo:
        await gateway.authenticate(WechatOAuthRequest(code="c", client_type="web"))

    assert excinfo.value.code == "oauth_token_exchange_failed"
    assert excinfo.value.http_status == 502


# ------------------------------------------------------------------------------
# 小程序 / 网关
# ------------------------------------------------------------------------------


def test_mini_program_identity() -> None:
    identity = mini_program_identity(
        MiniProgramCredential(open_id="o-mini-1", union_id="u-1")
    )

    assert identity.provider is ProviderKind.WECHAT_MINI_PROGRAM
    assert identity.subject == "o-mini-1"
    assert identity.union_id == "u-1"


def test_mini_program_identity_requires_openid() -> None:
    with pytest.raises(AppException) as excinfo:
        mini_program_identity(MiniProgramCredential(open_id=None, union_id="u-1"))

    assert excinfo.value.code == "openid_not_provided"


@pytest.mark.asyncio
async def test_gateway_dispatches_mini_program_without_network(
    gateway: ProviderGateway, providers
) -> None:
    identity = await gateway.authenticate(MiniProgramCredential(open_id="o-mini-2"))

    assert identity.provider is ProviderKind.WECHAT_MINI_PROGRAM
    assert identity.union_id is None
    assert providers.requests == []


@pytest.mark.asyncio
async def test_gateway_rejects_unknown_credential(gateway: ProviderGateway) -> None:
    with pytest.raises(TypeError):
        await gateway.authenticate(object())  # type: ignore[arg-type]
