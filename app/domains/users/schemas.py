"""
File: app/domains/users/schemas.py
Description: 用户领域 Pydantic 模型 (Schema)

1. UserRegister: 密码注册参数
2. UserUpdate: 资料更新 (typed patch，仅更新显式传入的字段)
3. PasswordChange: 修改密码
4. UserRead / UserAdminRead: 响应模型 (屏蔽密码哈希)
5. ProviderBindingRead: 已绑定的第三方渠道 (不含缓存令牌)

规范：
- 手机号强制 E.164 格式校验
- locale 必须在 SUPPORTED_LOCALES 内
- 响应模型开启 from_attributes=True 以支持 ORM 转换

Created: 2026-03-03
"""

import re
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.config import settings
from app.db.models.user import Gender

# ------------------------------------------------------------------------------
# Constants (常量定义)
# ------------------------------------------------------------------------------

# E.164 手机号正则：以 + 开头，后接 8-15 位数字
E164_PATTERN = re.compile(r"^\+\d{8,15}$")
E164_ERROR_MESSAGE = "手机号必须符合 E.164 格式 (例如 +8613800000000)"

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72  # bcrypt 只处理前 72 字节


def validate_e164(v: str | None) -> str | None:
    if v is None:
        return None
    if not E164_PATTERN.match(v):
        raise ValueError(E164_ERROR_MESSAGE)
    return v


def validate_locale(v: str | None) -> str | None:
    if v is None:
        return None
    if v not in settings.SUPPORTED_LOCALES:
        raise ValueError(f"不支持的语言: {v}")
    return v


# ------------------------------------------------------------------------------
# Input Schemas (输入模型)
# ------------------------------------------------------------------------------


class ProfileFields(BaseModel):
    """注册时可选填写的资料字段"""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(
        default=None, description="手机号 (E.164)", examples=["+8613800000000"]
    )
    avatar_url: str | None = Field(default=None, max_length=512)
    gender: Gender | None = None
    birth_date: date | None = None
    locale: str | None = Field(default=None, examples=["en", "zh", "de"])

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: str | None) -> str | None:
        return validate_e164(v)

    @field_validator("locale")
    @classmethod
    def check_locale(cls, v: str | None) -> str | None:
        return validate_locale(v)


class UserRegister(ProfileFields):
    """密码注册参数 (邮箱必填)"""

    email: EmailStr
    password: str = Field(
        ..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH
    )


class UserUpdate(BaseModel):
    """
    用户资料更新模型 (PATCH 语义)。
    仅显式传入的字段会被更新；name / gender / locale 不允许置空。
    """

    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = None
    avatar_url: str | None = Field(default=None, max_length=512)
    gender: Gender | None = None
    birth_date: date | None = None
    locale: str | None = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: str | None) -> str | None:
        return validate_e164(v)

    @field_validator("locale")
    @classmethod
    def check_locale(cls, v: str | None) -> str | None:
        return validate_locale(v)

    @field_validator("name", "gender", "locale", mode="before")
    @classmethod
    def not_nullable(cls, v: object) -> object:
        if v is None:
            raise ValueError("该字段不允许为空")
        return v


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(
        ..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH
    )


# ------------------------------------------------------------------------------
# Output Schemas (输出/响应模型)
# ------------------------------------------------------------------------------


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str | None
    is_email_verified: bool
    phone: str | None
    name: str
    avatar_url: str | None
    gender: str
    birth_date: date | None
    locale: str
    role: str
    is_banned: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime


class UserAdminRead(UserRead):
    is_deleted: bool
    deleted_at: datetime | None


class UserIdRead(BaseModel):
    id: int


class ProviderBindingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider: str
    provider_uid: str
    union_id: str | None
    created_at: datetime
