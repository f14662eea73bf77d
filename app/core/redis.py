"""
File: app/core/redis.py
Description: Redis 客户端管理 (Async)

本模块负责：
1. 创建全局 Redis 连接池 (基于 redis-py 的 asyncio 扩展)
2. 提供依赖注入所需的 Redis 客户端生成器
3. 管理连接生命周期

Redis 中保存的键：
- <purpose>:<subject>              一次性验证码 (带 TTL)
- rate_limit:<purpose>:<subject>   固定窗口限流计数
- refresh_token:<jti>              已签发的 Refresh Token 登记 (值为 user_id)

使用 decode_responses=True，读取结果统一为 str。

Created: 2026-03-02
"""

from collections.abc import AsyncGenerator

from redis.asyncio import Redis, from_url

from app.core.config import settings

# redis-py 内部维护连接池，全局单例即可
redis_client: Redis = from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True,
)


async def get_redis() -> AsyncGenerator[Redis, None]:
    """
    获取 Redis 客户端依赖。
    测试中 override 为 fakeredis 实例。
    """
    yield redis_client


async def close_redis() -> None:
    """在 lifespan shutdown 时释放连接池"""
    await redis_client.aclose()
