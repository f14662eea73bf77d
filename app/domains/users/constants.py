"""
File: app/domains/users/constants.py
Description: 用户领域常量定义 (错误码 + 成功提示)
"""

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)

from app.core.error_code import BaseErrorCode


class UserError(BaseErrorCode):
    """用户领域错误码"""

    # 格式: (HTTP状态, 错误码, 默认文案)

    USER_NOT_FOUND = (HTTP_404_NOT_FOUND, "user_not_found", "用户不存在")

    EMAIL_ALREADY_EXISTS = (HTTP_409_CONFLICT, "email_already_exists", "该邮箱已被注册")
    PHONE_ALREADY_EXISTS = (HTTP_409_CONFLICT, "phone_already_exists", "该手机号已被注册")
    USER_ALREADY_EXISTS = (HTTP_409_CONFLICT, "user_already_exists", "用户已存在")

    INVALID_PASSWORD = (HTTP_400_BAD_REQUEST, "invalid_password", "当前密码错误")

    # 越权操作他人账号 / 非管理员访问管理接口
    PERMISSION_DENIED = (HTTP_403_FORBIDDEN, "permission_denied", "无权执行该操作")


class UserMsg:
    PROFILE_UPDATED = "资料已更新"
    PASSWORD_UPDATED = "密码已修改"
    USER_BANNED = "用户已封禁"
    USER_UNBANNED = "用户已解封"
    USER_DELETED = "用户已注销"
    USER_RESTORED = "用户已恢复"
