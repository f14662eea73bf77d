"""
File: app/core/http_client.py
Description: 出站 HTTP 客户端管理 (httpx.AsyncClient)

1. 创建全局 AsyncClient (复用连接池，超时由 OAUTH_HTTP_TIMEOUT 控制)
2. 提供依赖注入所需的客户端生成器 (测试中 override 为 MockTransport 客户端)
3. 在 lifespan shutdown 时关闭

Created: 2026-03-05
"""

from collections.abc import AsyncGenerator

import httpx

from app.core.config import settings

http_client = httpx.AsyncClient(
    timeout=httpx.Timeout(settings.OAUTH_HTTP_TIMEOUT),
    headers={"Accept": "application/json"},
)


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    yield http_client


async def close_http_client() -> None:
    await http_client.aclose()
