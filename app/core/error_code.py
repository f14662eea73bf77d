"""
File: app/core/error_code.py
Description: 全局错误码基类与系统级错误定义

定义结构 Tuple(http_status, code, message):
1. http_status: HTTP 响应状态码 (4xx/5xx)
2. code: 稳定的机器可读错误标识 (snake_case，如 invalid_oauth_code)
3. message: 默认的人类可读错误消息

各业务领域在自己的 constants.py 中继承 BaseErrorCode 定义错误码。

Created: 2026-03-02
"""

from enum import Enum

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class BaseErrorCode(Enum):
    """
    错误码枚举基类
    所有业务领域的错误码 Enum 必须继承此类。

    Value Tuple Definition:
    (http_status, code, msg)
    """

    @property
    def http_status(self) -> int:
        """获取映射的 HTTP 状态码"""
        return self.value[0]

    @property
    def code(self) -> str:
        """获取稳定的业务错误标识"""
        return self.value[1]

    @property
    def msg(self) -> str:
        """获取默认错误描述信息"""
        return self.value[2]


class SystemErrorCode(BaseErrorCode):
    """
    系统通用错误定义
    包含: 参数校验、认证基础、系统故障
    """

    # HTTP 400: 客户端参数错误 (Pydantic 校验会自动映射到这里)
    INVALID_PARAMS = (HTTP_400_BAD_REQUEST, "invalid_params", "参数校验失败")

    # HTTP 401 / 403
    UNAUTHORIZED = (HTTP_401_UNAUTHORIZED, "unauthorized", "身份认证失败")
    # 签名错误 / 已过期 / 类型不符 (access 与 refresh 互不通用)
    INVALID_TOKEN = (HTTP_401_UNAUTHORIZED, "invalid_token", "令牌无效或已过期")
    FORBIDDEN = (HTTP_403_FORBIDDEN, "forbidden", "权限不足")

    # HTTP 500: 服务端故障 (需要监控报警)
    INTERNAL_ERROR = (
        HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "系统内部错误",
    )
    DB_ERROR = (HTTP_500_INTERNAL_SERVER_ERROR, "db_error", "数据库操作异常")

    # HTTP 503: 下游基础设施不可用
    EMAIL_DELIVERY_FAILED = (
        HTTP_503_SERVICE_UNAVAILABLE,
        "email_delivery_failed",
        "邮件发送失败，请稍后重试",
    )
