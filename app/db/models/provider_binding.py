"""
File: app/db/models/provider_binding.py
Description: 第三方身份绑定模型 (Google / 微信开放平台 / 微信小程序)

设计原则:
1. "No-Relationship" 模式：只保留 user_id 外键，不定义 ORM relationship，查询按需显式 select
2. 存储层唯一约束:
   - (provider, provider_uid): 一个外部身份最多属于一个用户
   - (user_id, provider): 一个用户在同一渠道最多一个绑定
3. union_id: 同一微信主体下不同端 (小程序 / App / 网站) 共享的关联键，用于跨端合并
4. 身份字段创建后不再修改；解绑即删除

Created: 2026-03-02
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from app.db.models.base import BigIntID, IDModel


class ProviderKind(StrEnum):
    """外部身份渠道 (闭集)"""

    GOOGLE = "google"
    WECHAT = "wechat"
    WECHAT_MINI_PROGRAM = "wechat_mini_program"


class ProviderBinding(IDModel):
    """
    用户第三方身份绑定表
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return "provider_bindings"

    __table_args__ = (
        UniqueConstraint("provider", "provider_uid", name="uq_provider_bindings_subject"),
        UniqueConstraint("user_id", "provider", name="uq_provider_bindings_user_provider"),
    )

    user_id: Mapped[int] = mapped_column(
        BigIntID,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="所属用户 ID",
    )

    provider: Mapped[str] = mapped_column(
        String(32), nullable=False, comment="渠道: google / wechat / wechat_mini_program"
    )
    provider_uid: Mapped[str] = mapped_column(
        String(128), nullable=False, comment="渠道内用户唯一标识 (Google sub / openid)"
    )
    union_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, index=True, comment="跨端关联键 (微信 unionid)"
    )

    # 缓存的第三方令牌 (不参与本系统会话鉴权)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="第三方令牌过期时间"
    )

    extra_data: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
        comment="第三方原始资料快照 (已脱敏)",
    )

    def __repr__(self) -> str:
        return f"<ProviderBinding user_id={self.user_id} provider={self.provider}>"
