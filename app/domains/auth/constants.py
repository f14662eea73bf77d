"""
File: app/domains/auth/constants.py
Description: 认证领域常量定义 (错误码 + 成功提示)

1. Error 定义: 继承 BaseErrorCode，包含 (HTTP状态, 错误码, 默认文案)
2. Msg 定义: 纯字符串常量，用于 Router 返回成功响应

Created: 2026-03-03
"""

from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from app.core.error_code import BaseErrorCode

# ==============================================================================
# 1. 错误码定义 (Error Codes)
# ==============================================================================


class AuthError(BaseErrorCode):
    """
    认证领域错误定义
    Tuple Structure: (HTTP_Status, Code_String, Default_Message)
    """

    # 用户不存在 / 未设置密码 / 密码错误统一返回，防止枚举攻击
    INVALID_CREDENTIALS = (
        HTTP_401_UNAUTHORIZED,
        "invalid_credentials",
        "账号或密码错误",
    )

    USER_BANNED = (HTTP_403_FORBIDDEN, "user_banned", "账户已被封禁")


# ==============================================================================
# 2. 成功提示语 (Success Messages)
# ==============================================================================


class AuthMsg:
    LOGIN_SUCCESS = "登录成功"
    REGISTER_SUCCESS = "注册成功"
    LOGOUT_SUCCESS = "已安全退出"
    REFRESH_SUCCESS = "令牌刷新成功"
