"""
File: app/domains/oauth/google.py
Description: Google OAuth2 客户端 (Authorization Code + PKCE)

exchange_code 执行顺序：
1. redirect_uri 按 client_type 白名单校验，未知类型同样视为回调地址非法 (失败不发起网络请求)
2. client_type 选择凭证 (ios / web)
3. 若请求附带 code_challenge，先行校验 PKCE (失败不发起网络请求)
4. POST token 端点，用授权码 + code_verifier 换取 access_token
5. GET userinfo 端点获取 id / email / verified_email / name / picture / locale
6. 缺少 id 或 email 视为资料不完整

Created: 2026-03-05
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from app.core.config import GoogleClientConfig
from app.core.exceptions import AppException
from app.core.logging import logger
from app.db.models.provider_binding import ProviderKind
from app.domains.identity.schemas import ExternalIdentity
from app.domains.oauth.constants import OAuthError
from app.domains.oauth.pkce import validate_code_verifier
from app.domains.oauth.schemas import GoogleOAuthRequest


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class GoogleOAuthClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        clients: dict[str, GoogleClientConfig],
        token_url: str,
        userinfo_url: str,
    ):
        self.http = http
        self.clients = clients
        self.token_url = token_url
        self.userinfo_url = userinfo_url

    def client_config(self, client_type: str) -> GoogleClientConfig:
        config = self.clients.get(client_type)
        if config is None:
            raise AppException(OAuthError.INVALID_CLIENT_TYPE)
        return config

    def validate_redirect_uri(self, redirect_uri: str, client_type: str) -> bool:
        config = self.clients.get(client_type)
        return config is not None and redirect_uri in config.redirect_urls

    async def exchange_code(self, request: GoogleOAuthRequest) -> ExternalIdentity:
        if not self.validate_redirect_uri(request.redirect_uri, request.client_type):
            logger.bind(client_type=request.client_type).warning(
                "Google redirect URI rejected"
            )
            raise AppException(OAuthError.INVALID_REDIRECT_URL)

        config = self.client_config(request.client_type)

        if request.code_challenge is not None and not validate_code_verifier(
            request.code_verifier, request.code_challenge
        ):
            raise AppException(OAuthError.INVALID_PKCE_VERIFIER)

        token = await self._exchange_token(request, config)
        profile = await self._fetch_user_info(token["access_token"])

        subject = str(profile.get("id") or "").strip()
        email = str(profile.get("email") or "").strip()
        if not subject or not email:
            raise AppException(OAuthError.INCOMPLETE_PROVIDER_PROFILE)

        expires_in = token.get("expires_in")
        expires_at = (
            datetime.now(UTC) + timedelta(seconds=int(expires_in))
            if isinstance(expires_in, int | float)
            else None
        )

        return ExternalIdentity(
            provider=ProviderKind.GOOGLE,
            subject=subject,
            email=email,
            email_verified=bool(profile.get("verified_email")),
            name=profile.get("name") or None,
            avatar_url=profile.get("picture") or None,
            locale=profile.get("locale") or None,
            access_token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            expires_at=expires_at,
            raw=profile,
        )

    async def _exchange_token(
        self, request: GoogleOAuthRequest, config: GoogleClientConfig
    ) -> dict[str, Any]:
        form = {
            "code": request.code,
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "redirect_uri": request.redirect_uri,
            "grant_type": "authorization_code",
            "code_verifier": request.code_verifier,
        }
        try:
            response = await self.http.post(self.token_url, data=form)
        except httpx.TimeoutException as exc:
            logger.opt(exception=exc).warning("Google token exchange timed out")
            raise AppException(
                OAuthError.TOKEN_EXCHANGE_FAILED, message="Google 令牌接口超时", cause=exc
            ) from exc
        except httpx.HTTPError as exc:
            logger.opt(exception=exc).warning("Google token exchange request failed")
            raise AppException(OAuthError.TOKEN_EXCHANGE_FAILED, cause=exc) from exc

        body = _json_body(response)
        if response.status_code != httpx.codes.OK:
            logger.bind(
                status_code=response.status_code, error=body.get("error")
            ).warning("Google token exchange rejected")
            if body.get("error") == "invalid_grant":
                raise AppException(OAuthError.INVALID_OAUTH_CODE)
            raise AppException(
                OAuthError.TOKEN_EXCHANGE_FAILED,
                data={"status_code": response.status_code, "error": body.get("error")},
            )

        if not body.get("access_token"):
            raise AppException(
                OAuthError.TOKEN_EXCHANGE_FAILED, message="Google 未返回 access_token"
            )
        return body

    async def _fetch_user_info(self, access_token: str) -> dict[str, Any]:
        try:
            response = await self.http.get(
                self.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            logger.opt(exception=exc).warning("Google userinfo request failed")
            raise AppException(OAuthError.USER_INFO_FETCH_FAILED, cause=exc) from exc

        if response.status_code != httpx.codes.OK:
            logger.bind(status_code=response.status_code).warning(
                "Google userinfo rejected"
            )
            raise AppException(
                OAuthError.USER_INFO_FETCH_FAILED,
                data={"status_code": response.status_code},
            )

        profile = _json_body(response)
        if not profile:
            raise AppException(OAuthError.USER_INFO_FETCH_FAILED)
        return profile
