"""
File: app/domains/oauth/schemas.py
Description: 第三方凭证 (Credential Variants)

每种渠道一个请求模型，统一通过 kind 属性映射到 ProviderKind：
1. GoogleOAuthRequest: 授权码 + PKCE verifier + 回调地址 + 客户端类型 (ios / web)
2. WechatOAuthRequest: 授权码 + 客户端类型 (web / app)
3. MiniProgramCredential: 网关透传的 openid / unionid
"""

from pydantic import BaseModel, Field

from app.db.models.provider_binding import ProviderKind


class GoogleOAuthRequest(BaseModel):
    code: str = Field(..., min_length=1, description="Google 授权码")
    # RFC 7636: 43-128 个字符
    code_verifier: str = Field(..., min_length=43, max_length=128)
    redirect_uri: str = Field(..., min_length=1)
    client_type: str = Field(..., examples=["ios", "web"])
    code_challenge: str | None = Field(
        default=None, description="可选；提供时在换取令牌前先行校验 PKCE"
    )

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.GOOGLE


class WechatOAuthRequest(BaseModel):
    code: str = Field(..., min_length=1, description="微信授权码")
    client_type: str = Field(..., examples=["web", "app"])

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.WECHAT


class MiniProgramCredential(BaseModel):
    open_id: str | None = None
    union_id: str | None = None

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.WECHAT_MINI_PROGRAM


ProviderCredential = GoogleOAuthRequest | WechatOAuthRequest | MiniProgramCredential
