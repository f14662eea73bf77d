"""
File: app/domains/identity/constants.py
Description: 身份解析领域错误码 (第三方绑定 / 解绑)
"""

from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)

from app.core.error_code import BaseErrorCode


class IdentityError(BaseErrorCode):
    """
    Tuple Structure: (HTTP_Status, Code_String, Default_Message)
    """

    # 外部身份已属于某个用户，或当前用户在该渠道已有绑定
    PROVIDER_ALREADY_BOUND = (
        HTTP_409_CONFLICT,
        "provider_already_bound",
        "该第三方账号已被绑定",
    )

    PROVIDER_NOT_BOUND = (HTTP_404_NOT_FOUND, "provider_not_bound", "尚未绑定该第三方账号")

    # 解绑防锁死：没有已验证邮箱时不允许解绑
    EMAIL_NOT_VERIFIED = (
        HTTP_401_UNAUTHORIZED,
        "email_not_verified",
        "请先验证邮箱后再解绑第三方账号",
    )


class IdentityMsg:
    PROVIDER_BOUND = "绑定成功"
    PROVIDER_UNBOUND = "解绑成功"
