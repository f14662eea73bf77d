"""
File: app/domains/oauth/service.py
Description: 外部身份网关 (Provider Gateway)

按凭证类型一次性分派到对应渠道适配器，统一输出 ExternalIdentity，
下游身份解析引擎无需关心具体渠道。
"""

from app.domains.identity.schemas import ExternalIdentity
from app.domains.oauth.google import GoogleOAuthClient
from app.domains.oauth.schemas import (
    GoogleOAuthRequest,
    MiniProgramCredential,
    ProviderCredential,
    WechatOAuthRequest,
)
from app.domains.oauth.wechat import WechatOAuthClient, mini_program_identity


class ProviderGateway:
    def __init__(self, google: GoogleOAuthClient, wechat: WechatOAuthClient):
        self.google = google
        self.wechat = wechat

    async def authenticate(self, credential: ProviderCredential) -> ExternalIdentity:
        if isinstance(credential, GoogleOAuthRequest):
            return await self.google.exchange_code(credential)
        if isinstance(credential, WechatOAuthRequest):
            return await self.wechat.exchange_code(credential)
        if isinstance(credential, MiniProgramCredential):
            return mini_program_identity(credential)
        raise TypeError(f"Unsupported credential type: {type(credential).__name__}")
