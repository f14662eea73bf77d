"""
File: app/domains/auth/router.py
Description: 认证领域 HTTP 路由层

本模块定义认证相关的 API 端点：
1. POST /register, /login, /refresh, /logout: 密码账号与会话
2. POST /wxmini/register, /wxmini/login: 微信小程序 (身份由网关请求头提供)
3. POST /wechat/token, /google/token: 授权码登录 (新用户 201，老用户 200)
4. POST / DELETE /users/{user_id}/google|wechat: 第三方渠道绑定 / 解绑

规范：
- 使用统一响应信封 (ResponseModel.ok)
- 使用 AuthServiceDep 进行服务注入
- 引用 AuthMsg / IdentityMsg 常量作为响应消息

Created: 2026-03-06
"""

from typing import Annotated

from fastapi import APIRouter, Header, Request, Response, status

from app.api.deps import CurrentUser
from app.core.response import ResponseModel
from app.db.models.provider_binding import ProviderKind
from app.domains.auth.constants import AuthMsg
from app.domains.auth.dependencies import AuthServiceDep
from app.domains.auth.schemas import (
    LoginRequest,
    MiniProgramRegisterRequest,
    OAuthToken,
    RefreshRequest,
    Token,
)
from app.domains.identity.constants import IdentityMsg
from app.domains.oauth.schemas import (
    GoogleOAuthRequest,
    MiniProgramCredential,
    WechatOAuthRequest,
)
from app.domains.users.schemas import UserIdRead, UserRegister

router = APIRouter()

WxOpenIdHeader = Annotated[str | None, Header(description="小程序网关注入的 openid")]
WxUnionIdHeader = Annotated[str | None, Header(description="小程序网关注入的 unionid")]


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


# ------------------------------------------------------------------------------
# 密码账号与会话
# ------------------------------------------------------------------------------


@router.post(
    "/register",
    response_model=ResponseModel[UserIdRead],
    status_code=status.HTTP_201_CREATED,
    summary="邮箱密码注册",
    description="创建账号并发送邮箱验证码 (发送失败不影响注册)。",
)
async def register(
    request: Request,
    user_in: UserRegister,
    service: AuthServiceDep,
) -> ResponseModel[UserIdRead]:
    user = await service.register_with_password(user_in)
    return ResponseModel.ok(
        data=UserIdRead(id=user.id),
        message=AuthMsg.REGISTER_SUCCESS,
        request_id=_request_id(request),
    )


@router.post(
    "/login",
    response_model=ResponseModel[Token],
    summary="密码登录",
    description="使用邮箱或手机号 + 密码登录，成功后返回 Access Token 和 Refresh Token。",
)
async def login(
    request: Request,
    login_data: LoginRequest,
    service: AuthServiceDep,
) -> ResponseModel[Token]:
    token = await service.login_with_password(login_data)
    return ResponseModel.ok(
        data=token, message=AuthMsg.LOGIN_SUCCESS, request_id=_request_id(request)
    )


@router.post(
    "/refresh",
    response_model=ResponseModel[Token],
    summary="刷新令牌 (续期)",
    description="使用有效的 Refresh Token 换取新的一对 Token (Token Rotation 策略)。旧 Token 将失效。",
)
async def refresh_token(
    request: Request,
    refresh_data: RefreshRequest,
    service: AuthServiceDep,
) -> ResponseModel[Token]:
    token = await service.refresh_token(refresh_data.refresh_token)
    return ResponseModel.ok(
        data=token, message=AuthMsg.REFRESH_SUCCESS, request_id=_request_id(request)
    )


@router.post(
    "/logout",
    response_model=ResponseModel[None],
    summary="用户登出",
    description="吊销该 Refresh Token，使该会话失效。",
)
async def logout(
    request: Request,
    refresh_data: RefreshRequest,
    service: AuthServiceDep,
) -> ResponseModel[None]:
    await service.logout(refresh_data.refresh_token)
    return ResponseModel.ok(
        data=None, message=AuthMsg.LOGOUT_SUCCESS, request_id=_request_id(request)
    )


# ------------------------------------------------------------------------------
# 微信小程序
# ------------------------------------------------------------------------------


@router.post(
    "/wxmini/register",
    response_model=ResponseModel[UserIdRead],
    status_code=status.HTTP_201_CREATED,
    summary="小程序注册",
)
async def register_mini_program(
    request: Request,
    profile: MiniProgramRegisterRequest,
    service: AuthServiceDep,
    x_wx_openid: WxOpenIdHeader = None,
    x_wx_unionid: WxUnionIdHeader = None,
) -> ResponseModel[UserIdRead]:
    credential = MiniProgramCredential(open_id=x_wx_openid, union_id=x_wx_unionid)
    user = await service.register_mini_program(credential, profile.to_hints())
    return ResponseModel.ok(
        data=UserIdRead(id=user.id),
        message=AuthMsg.REGISTER_SUCCESS,
        request_id=_request_id(request),
    )


@router.post(
    "/wxmini/login",
    response_model=ResponseModel[Token],
    summary="小程序登录",
    description="仅登录已注册 (或可通过 unionid 关联) 的用户，不自动创建账号。",
)
async def login_mini_program(
    request: Request,
    service: AuthServiceDep,
    x_wx_openid: WxOpenIdHeader = None,
    x_wx_unionid: WxUnionIdHeader = None,
) -> ResponseModel[Token]:
    credential = MiniProgramCredential(open_id=x_wx_openid, union_id=x_wx_unionid)
    token = await service.login_mini_program(credential)
    return ResponseModel.ok(
        data=token, message=AuthMsg.LOGIN_SUCCESS, request_id=_request_id(request)
    )


# ------------------------------------------------------------------------------
# 授权码登录
# ------------------------------------------------------------------------------


@router.post(
    "/wechat/token",
    response_model=ResponseModel[OAuthToken],
    summary="微信授权码登录",
    description="网站应用 (web) / 移动应用 (app) 授权码登录。新建账号时返回 201。",
)
async def wechat_token(
    request: Request,
    response: Response,
    oauth_in: WechatOAuthRequest,
    service: AuthServiceDep,
) -> ResponseModel[OAuthToken]:
    token = await service.exchange_wechat(oauth_in)
    if token.is_new_user:
        response.status_code = status.HTTP_201_CREATED
    return ResponseModel.ok(
        data=token, message=AuthMsg.LOGIN_SUCCESS, request_id=_request_id(request)
    )


@router.post(
    "/google/token",
    response_model=ResponseModel[OAuthToken],
    summary="Google 授权码登录 (PKCE)",
    description="iOS / Web 客户端授权码 + code_verifier 登录。新建账号时返回 201。",
)
async def google_token(
    request: Request,
    response: Response,
    oauth_in: GoogleOAuthRequest,
    service: AuthServiceDep,
) -> ResponseModel[OAuthToken]:
    token = await service.exchange_google(oauth_in)
    if token.is_new_user:
        response.status_code = status.HTTP_201_CREATED
    return ResponseModel.ok(
        data=token, message=AuthMsg.LOGIN_SUCCESS, request_id=_request_id(request)
    )


# ------------------------------------------------------------------------------
# 渠道绑定 / 解绑 (需登录，只能操作自己)
# ------------------------------------------------------------------------------


@router.post(
    "/users/{user_id}/google",
    response_model=ResponseModel[None],
    summary="绑定 Google 账号",
)
async def bind_google(
    request: Request,
    user_id: int,
    oauth_in: GoogleOAuthRequest,
    current_user: CurrentUser,
    service: AuthServiceDep,
) -> ResponseModel[None]:
    await service.bind_provider(user_id, current_user, oauth_in)
    return ResponseModel.ok(
        message=IdentityMsg.PROVIDER_BOUND, request_id=_request_id(request)
    )


@router.delete(
    "/users/{user_id}/google",
    response_model=ResponseModel[None],
    summary="解绑 Google 账号",
)
async def unbind_google(
    request: Request,
    user_id: int,
    current_user: CurrentUser,
    service: AuthServiceDep,
) -> ResponseModel[None]:
    await service.unbind_provider(user_id, current_user, ProviderKind.GOOGLE)
    return ResponseModel.ok(
        message=IdentityMsg.PROVIDER_UNBOUND, request_id=_request_id(request)
    )


@router.post(
    "/users/{user_id}/wechat",
    response_model=ResponseModel[None],
    summary="绑定微信账号",
)
async def bind_wechat(
    request: Request,
    user_id: int,
    oauth_in: WechatOAuthRequest,
    current_user: CurrentUser,
    service: AuthServiceDep,
) -> ResponseModel[None]:
    await service.bind_provider(user_id, current_user, oauth_in)
    return ResponseModel.ok(
        message=IdentityMsg.PROVIDER_BOUND, request_id=_request_id(request)
    )


@router.delete(
    "/users/{user_id}/wechat",
    response_model=ResponseModel[None],
    summary="解绑微信账号",
)
async def unbind_wechat(
    request: Request,
    user_id: int,
    current_user: CurrentUser,
    service: AuthServiceDep,
) -> ResponseModel[None]:
    await service.unbind_provider(user_id, current_user, ProviderKind.WECHAT)
    return ResponseModel.ok(
        message=IdentityMsg.PROVIDER_UNBOUND, request_id=_request_id(request)
    )
