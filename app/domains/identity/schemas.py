"""
File: app/domains/identity/schemas.py
Description: 身份解析领域数据结构

1. ExternalIdentity: 各渠道适配器输出的统一身份结构，解析引擎只认这一种形状
2. ProfileHints: 用户在注册时主动提供的资料 (小程序注册)
3. Resolution: 解析结果 (用户 + 命中方式)

Created: 2026-03-04
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from app.db.models.provider_binding import ProviderKind
from app.db.models.user import User


class ExternalIdentity(BaseModel):
    """
    规范化后的外部身份。
    subject: 渠道内唯一标识 (Google id / 微信 openid)
    union_id: 跨端关联键 (微信 unionid)
    """

    provider: ProviderKind
    subject: str = Field(..., min_length=1)
    union_id: str | None = None

    email: str | None = None
    email_verified: bool = False
    name: str | None = None
    avatar_url: str | None = None
    locale: str | None = None

    # 缓存的第三方令牌
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: datetime | None = None

    raw: dict[str, Any] = Field(default_factory=dict)


class ProfileHints(BaseModel):
    """注册时由客户端提交的资料，优先级高于渠道资料"""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    avatar_url: str | None = None
    gender: str | None = None
    birth_date: date | None = None
    locale: str | None = None


class ResolutionOutcome(StrEnum):
    EXISTING = "existing"  # 命中 (provider, subject)
    LINKED = "linked"  # 通过 union_id 关联到已有用户
    CREATED = "created"  # 新建用户


@dataclass(frozen=True, slots=True)
class Resolution:
    user: User
    outcome: ResolutionOutcome

    @property
    def is_new_user(self) -> bool:
        return self.outcome is ResolutionOutcome.CREATED
