"""
File: app/domains/oauth/constants.py
Description: 第三方登录适配层错误码 (Google / 微信)

校验类错误 (4xx) 与第三方服务故障 (502) 严格区分；第三方故障不在请求内自动重试。
"""

from starlette.status import HTTP_400_BAD_REQUEST, HTTP_502_BAD_GATEWAY

from app.core.error_code import BaseErrorCode


class OAuthError(BaseErrorCode):
    """
    Tuple Structure: (HTTP_Status, Code_String, Default_Message)
    """

    # ---- 请求校验 (不发起任何网络调用) ----
    INVALID_CLIENT_TYPE = (HTTP_400_BAD_REQUEST, "invalid_client_type", "不支持的客户端类型")
    INVALID_REDIRECT_URL = (
        HTTP_400_BAD_REQUEST,
        "invalid_redirect_url",
        "回调地址不在白名单内",
    )
    INVALID_PKCE_VERIFIER = (
        HTTP_400_BAD_REQUEST,
        "invalid_pkce_verifier",
        "PKCE code_verifier 与 code_challenge 不匹配",
    )
    OPENID_NOT_PROVIDED = (HTTP_400_BAD_REQUEST, "openid_not_provided", "缺少微信 openid")

    # ---- 第三方返回的业务拒绝 ----
    INVALID_OAUTH_CODE = (HTTP_400_BAD_REQUEST, "invalid_oauth_code", "授权码无效或已过期")
    INCOMPLETE_PROVIDER_PROFILE = (
        HTTP_400_BAD_REQUEST,
        "incomplete_provider_profile",
        "第三方账号资料不完整 (缺少邮箱或用户标识)",
    )

    # ---- 第三方服务故障 ----
    TOKEN_EXCHANGE_FAILED = (
        HTTP_502_BAD_GATEWAY,
        "oauth_token_exchange_failed",
        "第三方授权码换取令牌失败",
    )
    USER_INFO_FETCH_FAILED = (
        HTTP_502_BAD_GATEWAY,
        "oauth_user_info_fetch_failed",
        "获取第三方用户信息失败",
    )
    WECHAT_API_ERROR = (HTTP_502_BAD_GATEWAY, "wechat_api_error", "微信接口返回错误")
