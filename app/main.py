"""
File: app/main.py
Description: FastAPI 应用入口与工厂函数

本模块负责：
1. 创建 FastAPI 应用实例 (设置默认响应类为 ORJSONResponse)
2. 管理应用生命周期 (lifespan): 启动日志、关闭数据库 / Redis / 出站 HTTP 连接
3. 组装全局组件：中间件、异常处理器、路由
4. 提供健康检查接口 (/health，原始 JSON，不走统一信封)

Created: 2026-03-06
"""

import asyncio
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

# asyncpg 在 Windows 下必须使用 SelectorEventLoop，需在任何事件循环启动前设置
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from app.api_router import api_router
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.http_client import close_http_client
from app.core.logging import logger, setup_logging
from app.core.middleware import register_middlewares
from app.core.redis import close_redis
from app.db.session import close_engine


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    应用生命周期管理器。
    """
    setup_logging()
    logger.bind(environment=settings.ENVIRONMENT).info(
        f"{settings.PROJECT_NAME} starting"
    )

    yield

    await close_http_client()
    await close_redis()
    await close_engine()


def create_app() -> FastAPI:
    """应用工厂函数"""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        # 生产环境关闭交互式文档
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )

    # 1. 注册中间件 (CORS, RequestID, Logging)
    register_middlewares(app)

    # 2. 注册异常处理器
    register_exception_handlers(app)

    # 3. 挂载 API 路由
    app.include_router(api_router, prefix=settings.API_V1_STR)

    # 4. 健康检查
    @app.get("/health", tags=["health"], summary="健康检查")
    async def health_check() -> dict[str, str]:
        """
        用于 K8s Liveness/Readiness Probe 或负载均衡器检查。
        """
        return {"status": "ok"}

    return app


# 暴露给 Uvicorn 运行的应用实例
app = create_app()

if __name__ == "__main__":
    # 本地调试入口
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
