"""
File: app/domains/users/router.py
Description: 用户领域 HTTP 路由层

1. /me 系列接口：当前登录用户的资料、密码、已绑定渠道 (CurrentUser)
2. 管理接口：用户列表、详情、封禁/解封、软删除/恢复 (AdminUser)

注册入口统一在 /auth/register，本模块不再提供公开接口。

Created: 2026-03-06
"""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from app.api.deps import AdminUser, CurrentUser
from app.core.response import ResponseModel
from app.domains.users.constants import UserMsg
from app.domains.users.dependencies import UserServiceDep
from app.domains.users.schemas import (
    PasswordChange,
    ProviderBindingRead,
    UserAdminRead,
    UserRead,
    UserUpdate,
)

router = APIRouter()


# ------------------------------------------------------------------------------
# Protected Endpoints (受保护接口 - 需登录)
# ------------------------------------------------------------------------------


@router.get(
    "/me",
    response_model=ResponseModel[UserRead],
    summary="获取我的个人资料",
)
async def read_user_me(
    request: Request,
    current_user: CurrentUser,
) -> ResponseModel[UserRead]:
    # current_user 已在 deps.py 中完成鉴权、查库和状态校验
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        data=UserRead.model_validate(current_user), request_id=req_id
    )


@router.patch(
    "/me",
    response_model=ResponseModel[UserRead],
    summary="更新我的个人资料",
    description="仅更新显式传入的字段。修改邮箱后需要重新验证。",
)
async def update_user_me(
    request: Request,
    user_in: UserUpdate,
    current_user: CurrentUser,
    service: UserServiceDep,
) -> ResponseModel[UserRead]:
    updated_user = await service.update_profile(current_user.id, user_in)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        data=UserRead.model_validate(updated_user),
        message=UserMsg.PROFILE_UPDATED,
        request_id=req_id,
    )


@router.put(
    "/me/password",
    response_model=ResponseModel[None],
    summary="修改密码",
)
async def update_password_me(
    request: Request,
    body: PasswordChange,
    current_user: CurrentUser,
    service: UserServiceDep,
) -> ResponseModel[None]:
    await service.update_password(
        current_user.id, body.current_password, body.new_password
    )
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(message=UserMsg.PASSWORD_UPDATED, request_id=req_id)


@router.get(
    "/me/providers",
    response_model=ResponseModel[list[ProviderBindingRead]],
    summary="已绑定的第三方账号",
    description="不返回缓存的第三方令牌。",
)
async def list_my_providers(
    request: Request,
    current_user: CurrentUser,
    service: UserServiceDep,
) -> ResponseModel[list[ProviderBindingRead]]:
    bindings = await service.list_bindings(current_user.id)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        data=[
            ProviderBindingRead.model_validate(b).model_dump(mode="json")
            for b in bindings
        ],
        request_id=req_id,
    )


# ------------------------------------------------------------------------------
# Admin Endpoints (管理员接口)
# ------------------------------------------------------------------------------


@router.get(
    "",
    response_model=ResponseModel[list[UserAdminRead]],
    summary="用户列表 (管理员)",
)
async def list_users(
    request: Request,
    _admin: AdminUser,
    service: UserServiceDep,
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    include_deleted: bool = False,
) -> ResponseModel[list[UserAdminRead]]:
    users = await service.list_users(
        skip=skip, limit=limit, include_deleted=include_deleted
    )
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        data=[UserAdminRead.model_validate(u).model_dump(mode="json") for u in users],
        request_id=req_id,
    )


@router.get(
    "/{user_id}",
    response_model=ResponseModel[UserAdminRead],
    summary="用户详情 (管理员)",
)
async def read_user(
    request: Request,
    user_id: int,
    _admin: AdminUser,
    service: UserServiceDep,
) -> ResponseModel[UserAdminRead]:
    user = await service.get_any(user_id)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        data=UserAdminRead.model_validate(user), request_id=req_id
    )


@router.post(
    "/{user_id}/ban",
    response_model=ResponseModel[UserAdminRead],
    summary="封禁用户 (管理员)",
)
async def ban_user(
    request: Request,
    user_id: int,
    _admin: AdminUser,
    service: UserServiceDep,
) -> ResponseModel[UserAdminRead]:
    user = await service.set_banned(user_id, True)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        data=UserAdminRead.model_validate(user),
        message=UserMsg.USER_BANNED,
        request_id=req_id,
    )


@router.post(
    "/{user_id}/unban",
    response_model=ResponseModel[UserAdminRead],
    summary="解封用户 (管理员)",
)
async def unban_user(
    request: Request,
    user_id: int,
    _admin: AdminUser,
    service: UserServiceDep,
) -> ResponseModel[UserAdminRead]:
    user = await service.set_banned(user_id, False)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        data=UserAdminRead.model_validate(user),
        message=UserMsg.USER_UNBANNED,
        request_id=req_id,
    )


@router.delete(
    "/{user_id}",
    response_model=ResponseModel[UserAdminRead],
    summary="注销用户 (管理员，软删除)",
)
async def delete_user(
    request: Request,
    user_id: int,
    _admin: AdminUser,
    service: UserServiceDep,
) -> ResponseModel[UserAdminRead]:
    user = await service.soft_delete(user_id)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        data=UserAdminRead.model_validate(user),
        message=UserMsg.USER_DELETED,
        request_id=req_id,
    )


@router.post(
    "/{user_id}/restore",
    response_model=ResponseModel[UserAdminRead],
    summary="恢复用户 (管理员)",
)
async def restore_user(
    request: Request,
    user_id: int,
    _admin: AdminUser,
    service: UserServiceDep,
) -> ResponseModel[UserAdminRead]:
    user = await service.restore(user_id)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        data=UserAdminRead.model_validate(user),
        message=UserMsg.USER_RESTORED,
        request_id=req_id,
    )
