"""
File: app/db/models/__init__.py
Description: ORM 模型注册表

导入所有业务模型与基类，供 Alembic (env.py) 自动发现 metadata。
每当新增一个 Model 文件，必须在此处导入，否则 autogenerate 无法检测到新表。

Created: 2026-03-02
"""

from app.db.models.base import (
    Base,
    IDBase,
    IDModel,
    SoftDeleteMixin,
    TimestampMixin,
)
from app.db.models.provider_binding import ProviderBinding, ProviderKind
from app.db.models.user import Gender, User, UserRole

__all__ = [
    # 基类
    "Base",
    "IDBase",
    "IDModel",
    "TimestampMixin",
    "SoftDeleteMixin",
    # 业务模型
    "User",
    "UserRole",
    "Gender",
    "ProviderBinding",
    "ProviderKind",
]
