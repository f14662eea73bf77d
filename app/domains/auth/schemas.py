"""
File: app/domains/auth/schemas.py
Description: 认证领域 Pydantic 模型 (Schema)

本模块定义了认证相关的输入/输出数据结构：
1. Token: 登录/刷新成功后返回的双 Token 结构
2. OAuthToken: 第三方登录返回的双 Token + is_new_user
3. LoginRequest: 邮箱或手机号 + 密码登录请求参数
4. RefreshRequest: 刷新 / 登出请求参数
5. MiniProgramRegisterRequest: 小程序注册时提交的资料

Created: 2026-03-06
"""

from pydantic import BaseModel, EmailStr, Field

from app.domains.identity.schemas import ProfileHints
from app.domains.users.schemas import ProfileFields


class Token(BaseModel):
    """
    双 Token 响应结构 (Access + Refresh)。
    """

    access_token: str = Field(..., description="访问令牌 (JWT, 短效)")
    refresh_token: str = Field(..., description="刷新令牌 (JWT, 长效, 一次性)")
    token_type: str = Field(default="Bearer", description="令牌类型")
    expires_in: int = Field(..., description="Access Token 有效期 (秒)")


class OAuthToken(Token):
    is_new_user: bool = Field(default=False, description="本次登录是否新建了账号")


class LoginRequest(BaseModel):
    """
    密码登录请求参数。
    先按邮箱查找，再按手机号查找。
    """

    email_or_phone: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="邮箱或手机号 (E.164)",
        examples=["alice@example.com", "+8613800000000"],
    )
    password: str = Field(..., min_length=1, description="用户密码")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="有效的刷新令牌")


class MiniProgramRegisterRequest(ProfileFields):
    """小程序注册资料 (身份由网关请求头提供)"""

    email: EmailStr | None = None

    def to_hints(self) -> ProfileHints:
        return ProfileHints(
            name=self.name,
            email=self.email,
            phone=self.phone,
            avatar_url=self.avatar_url,
            gender=self.gender,
            birth_date=self.birth_date,
            locale=self.locale,
        )
