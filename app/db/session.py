"""
File: app/db/session.py
Description: 数据库会话管理 (Async SQLAlchemy)

本模块负责：
1. 创建全局唯一的 AsyncEngine (生产 postgresql+asyncpg，测试 sqlite+aiosqlite)
2. 连接池参数从 Settings 读取，仅作用于带连接池的引擎
3. 创建 AsyncSession 工厂 (AsyncSessionLocal)
4. 集成 orjson 用于 JSON 字段序列化

Created: 2026-03-02
"""

from typing import Any

import orjson
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings


def _orjson_serializer(obj: Any) -> str:
    """orjson 返回 bytes，SQLAlchemy 需要 str"""
    return orjson.dumps(obj).decode("utf-8")


def _orjson_deserializer(obj: str | bytes) -> Any:
    return orjson.loads(obj)


def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {
        "echo": settings.is_debug,
        "json_serializer": _orjson_serializer,
        "json_deserializer": _orjson_deserializer,
    }
    if settings.is_sqlite:
        return options

    options.update(
        pool_pre_ping=settings.DB_POOL_PRE_PING,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        connect_args={"ssl": False},
    )
    return options


# 1. 创建异步引擎
engine: AsyncEngine = create_async_engine(
    str(settings.SQLALCHEMY_DATABASE_URI), **_engine_options()
)

# 2. 创建异步会话工厂
# expire_on_commit=False: 避免 commit 后访问属性触发隐式 IO
AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


async def close_engine() -> None:
    """关闭数据库引擎，释放连接池资源"""
    await engine.dispose()
