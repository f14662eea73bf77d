"""
File: app/api_router.py
Description: 根 API 路由聚合层

本模块负责：
1. 聚合所有业务领域的 Router (auth, verification, users)
2. 统一设置路由前缀 (/auth, /users)
3. 统一设置标签 (Tags) 用于 OpenAPI 文档分组

Created: 2026-03-06
"""

from fastapi import APIRouter

from app.domains.auth.router import router as auth_router
from app.domains.users.router import router as users_router
from app.domains.verification.router import router as verification_router

# 创建根 API 路由
api_router = APIRouter()

# 1. 认证模块 (登录 / 注册 / 第三方登录 / 渠道绑定)
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])

# 2. 邮箱验证与密码找回，与认证共用 /auth 前缀
api_router.include_router(verification_router, prefix="/auth", tags=["verification"])

# 3. 用户模块 (个人资料 / 管理员)
api_router.include_router(users_router, prefix="/users", tags=["users"])
