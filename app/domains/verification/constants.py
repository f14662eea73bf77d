"""
File: app/domains/verification/constants.py
Description: 验证码领域常量定义 (邮箱验证 / 密码重置)
"""

from starlette.status import HTTP_400_BAD_REQUEST, HTTP_429_TOO_MANY_REQUESTS

from app.core.error_code import BaseErrorCode


class VerificationError(BaseErrorCode):
    """
    Tuple Structure: (HTTP_Status, Code_String, Default_Message)
    """

    # 验证码错误 / 过期 / 已使用 统一返回
    INVALID_VERIFICATION_CODE = (
        HTTP_400_BAD_REQUEST,
        "invalid_verification_code",
        "验证码错误或已过期",
    )

    EMAIL_ALREADY_VERIFIED = (
        HTTP_400_BAD_REQUEST,
        "email_already_verified",
        "邮箱已验证，无需重复操作",
    )

    TOO_MANY_VERIFICATION_REQUESTS = (
        HTTP_429_TOO_MANY_REQUESTS,
        "too_many_verification_requests",
        "验证邮件发送过于频繁，请稍后再试",
    )

    TOO_MANY_RESET_REQUESTS = (
        HTTP_429_TOO_MANY_REQUESTS,
        "too_many_reset_requests",
        "密码重置请求过于频繁，请稍后再试",
    )


class VerificationMsg:
    VERIFICATION_SENT = "验证码已发送"
    EMAIL_VERIFIED = "邮箱验证成功"
    RESET_SENT = "密码重置码已发送"
    PASSWORD_RESET = "密码重置成功"
