"""
File: app/db/models/user.py
Description: 用户核心账号模型

继承自 IDModel 和 SoftDeleteMixin，自动拥有：
1. 自增整型主键 (创建后不可变)
2. created_at / updated_at (UTC)
3. is_deleted / deleted_at (软删除，用户永不物理删除)

唯一性约定：
- email / phone 仅在"未软删除"的用户之间唯一 (部分唯一索引)
- 已注销账号占用的邮箱/手机号可被新注册复用，恢复账号时需重新校验冲突

Created: 2026-03-02
"""

from datetime import date, datetime
from enum import StrEnum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    String,
    text,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from app.db.models.base import IDModel, SoftDeleteMixin


class UserRole(StrEnum):
    USER = "user"
    ADMIN = "admin"


class Gender(StrEnum):
    PREFER_NOT_TO_SAY = "PREFER_NOT_TO_SAY"
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class User(IDModel, SoftDeleteMixin):
    """
    用户模型 (账号域)
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return "users"

    # --------------------------------------------------------------------------
    # 数据库级约束 (Constraints)
    # --------------------------------------------------------------------------
    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="name_not_empty"),
        CheckConstraint("role IN ('user', 'admin')", name="role_valid"),
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
        Index(
            "uq_users_phone_active",
            "phone",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )

    # --------------------------------------------------------------------------
    # 登录凭证
    # --------------------------------------------------------------------------
    email: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="邮箱"
    )
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=text("false"),
        nullable=False,
        comment="邮箱是否已验证 (账号找回通道)",
    )
    phone: Mapped[str | None] = mapped_column(
        String(20), nullable=True, comment="手机号 (E.164)"
    )

    # 第三方登录创建的账号可以没有密码
    hashed_password: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="密码哈希值 (bcrypt)"
    )

    # --------------------------------------------------------------------------
    # 基础资料
    # --------------------------------------------------------------------------
    name: Mapped[str] = mapped_column(String(100), nullable=False, comment="显示名称")
    avatar_url: Mapped[str | None] = mapped_column(
        String(512), nullable=True, comment="头像URL"
    )
    gender: Mapped[str] = mapped_column(
        String(20),
        default=Gender.PREFER_NOT_TO_SAY.value,
        server_default=Gender.PREFER_NOT_TO_SAY.value,
        nullable=False,
        comment="性别",
    )
    birth_date: Mapped[date | None] = mapped_column(
        Date, nullable=True, comment="出生日期"
    )
    locale: Mapped[str] = mapped_column(
        String(10), default="en", server_default="en", nullable=False, comment="语言"
    )

    # --------------------------------------------------------------------------
    # 状态与权限
    # --------------------------------------------------------------------------
    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.USER.value,
        server_default=UserRole.USER.value,
        nullable=False,
        comment="角色 (user / admin)",
    )
    is_banned: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=text("false"),
        nullable=False,
        comment="是否封禁",
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="最后登录时间 (UTC)"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role}>"
