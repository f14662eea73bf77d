"""
File: app/domains/oauth/dependencies.py
Description: 第三方登录适配层依赖注入

依赖链：
get_http_client -> GoogleOAuthClient / WechatOAuthClient -> ProviderGateway -> ProviderGatewayDep
"""

from typing import Annotated

import httpx
from fastapi import Depends

from app.core.config import settings
from app.core.http_client import get_http_client
from app.domains.oauth.google import GoogleOAuthClient
from app.domains.oauth.service import ProviderGateway
from app.domains.oauth.wechat import WechatOAuthClient

HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]


async def get_provider_gateway(http: HttpClientDep) -> ProviderGateway:
    google = GoogleOAuthClient(
        http=http,
        clients=settings.google_clients(),
        token_url=settings.GOOGLE_TOKEN_URL,
        userinfo_url=settings.GOOGLE_USERINFO_URL,
    )
    wechat = WechatOAuthClient(
        http=http,
        clients=settings.wechat_clients(),
        token_url=settings.WECHAT_OAUTH_TOKEN_URL,
    )
    return ProviderGateway(google=google, wechat=wechat)


ProviderGatewayDep = Annotated[ProviderGateway, Depends(get_provider_gateway)]
