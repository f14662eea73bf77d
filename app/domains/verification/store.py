"""
File: app/domains/verification/store.py
Description: 一次性验证码存储 (Ephemeral Code Store)

CodeStore 定义了验证码服务需要的最小能力：
- set / get / delete: 带 TTL 的键值存取
- consume: 原子"比较并删除" (WATCH + MULTI)，并发请求中只有一个调用方能消费成功
- increment: 固定窗口计数 (频率限制)，SET NX EX 与 INCR 同一事务

RedisCodeStore 基于 redis.asyncio 实现 (decode_responses=True)。

Created: 2026-03-04
"""

import secrets
from datetime import timedelta
from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import WatchError


class CodeStore(Protocol):
    async def set(self, key: str, value: str, ttl: timedelta) -> None: ...

    async def get(self, key: str) -> str | None: ...

    async def delete(self, key: str) -> None: ...

    async def consume(self, key: str, expected: str) -> bool: ...

    async def increment(self, key: str, window: timedelta) -> int: ...


class RedisCodeStore:
    def __init__(self, redis: Redis):
        self.redis = redis

    async def set(self, key: str, value: str, ttl: timedelta) -> None:
        await self.redis.set(key, value, ex=ttl)

    async def get(self, key: str) -> str | None:
        return await self.redis.get(key)

    async def delete(self, key: str) -> None:
        await self.redis.delete(key)

    async def consume(self, key: str, expected: str) -> bool:
        """
        比对成功才删除：不匹配时保留原值且不重置 TTL。
        WATCH 保证比对与删除之间键未被改写，同一个码只会被一个请求取走。
        """
        async with self.redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(key)
                current = await pipe.get(key)
                if current is None or not secrets.compare_digest(
                    current.encode(), expected.encode()
                ):
                    return False

                pipe.multi()
                pipe.delete(key)
                (deleted,) = await pipe.execute()
            except WatchError:
                return False
        return deleted == 1

    async def increment(self, key: str, window: timedelta) -> int:
        """窗口首个计数与过期时间在同一事务内写入"""
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(key, 0, ex=window, nx=True)
            pipe.incr(key)
            _, count = await pipe.execute()
        return int(count)
