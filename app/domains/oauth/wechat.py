"""
File: app/domains/oauth/wechat.py
Description: 微信开放平台 OAuth 客户端 (网站应用 / 移动应用) 与小程序身份

1. WechatOAuthClient.exchange_code: code -> {openid, unionid, access_token, ...}
   微信接口即使出错也返回 HTTP 200，需检查 errcode；errcode / errmsg 原样透出
2. mini_program_identity: 小程序云托管网关透传的 openid / unionid 直接构造身份

Created: 2026-03-05
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from app.core.config import WechatClientConfig
from app.core.exceptions import AppException
from app.core.logging import logger
from app.db.models.provider_binding import ProviderKind
from app.domains.identity.schemas import ExternalIdentity
from app.domains.oauth.constants import OAuthError
from app.domains.oauth.schemas import MiniProgramCredential, WechatOAuthRequest
from app.utils.masking import mask_sensitive_data


class WechatOAuthClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        clients: dict[str, WechatClientConfig],
        token_url: str,
    ):
        self.http = http
        self.clients = clients
        self.token_url = token_url

    def client_config(self, client_type: str) -> WechatClientConfig:
        config = self.clients.get(client_type)
        if config is None:
            raise AppException(OAuthError.INVALID_CLIENT_TYPE)
        return config

    async def exchange_code(self, request: WechatOAuthRequest) -> ExternalIdentity:
        config = self.client_config(request.client_type)
        params = {
            "appid": config.appid,
            "secret": config.secret,
            "code": request.code,
            "grant_type": "authorization_code",
        }

        try:
            response = await self.http.get(self.token_url, params=params)
        except httpx.TimeoutException as exc:
            logger.opt(exception=exc).warning("WeChat code exchange timed out")
            raise AppException(
                OAuthError.TOKEN_EXCHANGE_FAILED, message="微信接口超时", cause=exc
            ) from exc
        except httpx.HTTPError as exc:
            logger.opt(exception=exc).warning("WeChat code exchange request failed")
            raise AppException(OAuthError.TOKEN_EXCHANGE_FAILED, cause=exc) from exc

        if response.status_code != httpx.codes.OK:
            raise AppException(
                OAuthError.TOKEN_EXCHANGE_FAILED,
                data={"status_code": response.status_code},
            )

        try:
            body: Any = response.json()
        except ValueError as exc:
            raise AppException(OAuthError.TOKEN_EXCHANGE_FAILED, cause=exc) from exc

        if not isinstance(body, dict):
            logger.bind(body_type=type(body).__name__).warning(
                "WeChat code exchange returned non-object body"
            )
            raise AppException(OAuthError.TOKEN_EXCHANGE_FAILED)

        errcode = body.get("errcode")
        if errcode:
            errmsg = body.get("errmsg", "")
            logger.bind(errcode=errcode, errmsg=errmsg).warning(
                "WeChat code exchange returned error"
            )
            raise AppException(
                OAuthError.WECHAT_API_ERROR,
                message=f"微信接口错误 {errcode}: {errmsg}",
                data={"errcode": errcode, "errmsg": errmsg},
            )

        openid = body.get("openid")
        if not openid:
            raise AppException(
                OAuthError.WECHAT_API_ERROR, message="微信接口未返回 openid"
            )

        expires_in = body.get("expires_in")
        return ExternalIdentity(
            provider=ProviderKind.WECHAT,
            subject=openid,
            union_id=body.get("unionid") or None,
            access_token=body.get("access_token"),
            refresh_token=body.get("refresh_token"),
            expires_at=(
                datetime.now(UTC) + timedelta(seconds=int(expires_in))
                if isinstance(expires_in, int)
                else None
            ),
            raw=mask_sensitive_data(body),
        )


def mini_program_identity(credential: MiniProgramCredential) -> ExternalIdentity:
    if not credential.open_id:
        raise AppException(OAuthError.OPENID_NOT_PROVIDED)

    return ExternalIdentity(
        provider=ProviderKind.WECHAT_MINI_PROGRAM,
        subject=credential.open_id,
        union_id=credential.union_id or None,
    )
