"""
File: app/core/exceptions.py
Description: 业务异常类与全局异常处理器

1. 业务异常基类（AppException）接受 BaseErrorCode 枚举，可携带附加数据与底层原因
2. 全局异常处理器将异常映射为：语义化 HTTP 状态码 + 稳定错误码
3. 数据库异常与未捕获异常只记录日志，不向调用方泄露原始信息

Created: 2026-03-02
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.error_code import BaseErrorCode, SystemErrorCode
from app.core.logging import logger
from app.core.response import ResponseModel

# ------------------------------------------------------------------------------
# 1. 自定义业务异常类
# ------------------------------------------------------------------------------


class AppException(Exception):
    """
    应用基础异常类。

    用法示例:
        raise AppException(AuthError.INVALID_CREDENTIALS)
        raise AppException(OAuthError.WECHAT_API_ERROR, message="40029: invalid code")
        raise AppException(OAuthError.TOKEN_EXCHANGE_FAILED, cause=exc) from exc
    """

    def __init__(
        self,
        error: BaseErrorCode,
        message: str = "",
        data: Any = None,
        cause: BaseException | None = None,
    ):
        self.error = error
        self.http_status = error.http_status
        self.code = error.code
        self.message = message or error.msg
        self.data = data
        self.cause = cause
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"AppException(code={self.code!r}, message={self.message!r})"


# ------------------------------------------------------------------------------
# 2. 辅助函数
# ------------------------------------------------------------------------------


def _get_request_id(request: Request) -> str:
    """尝试从 request.state 获取 request_id，如果不存在则返回 'unknown'"""
    return str(getattr(request.state, "request_id", "unknown"))


def _fail_response(
    request_id: str,
    http_status: int,
    error: str,
    message: str,
    data: Any = None,
) -> ORJSONResponse:
    response_model = ResponseModel.fail(
        error=error,
        message=message,
        data=data,
        request_id=request_id,
    )
    return ORJSONResponse(
        status_code=http_status,
        content=response_model.model_dump(mode="json"),
    )


# ------------------------------------------------------------------------------
# 3. 全局异常处理器 (Handlers)
# ------------------------------------------------------------------------------


async def app_exception_handler(request: Request, exc: AppException) -> ORJSONResponse:
    """
    处理自定义业务异常 (AppException)
    直接映射为定义好的 HTTP 状态码和错误码
    """
    request_id = _get_request_id(request)

    log = logger.bind(
        request_id=request_id,
        error_code=exc.code,
        http_status=exc.http_status,
        message=exc.message,
    )
    if exc.cause is not None:
        log = log.bind(cause=repr(exc.cause))
    log.warning("Business exception occurred")

    return _fail_response(
        request_id, exc.http_status, exc.code, exc.message, exc.data
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """
    处理 Pydantic 校验异常 (FastAPI 默认抛出 422)
    映射目标: HTTP 400 Bad Request / invalid_params
    """
    request_id = _get_request_id(request)

    errors = jsonable_encoder(exc.errors())
    first_error = errors[0] if errors else {}

    # loc 示例: ['body', 'email']
    loc = first_error.get("loc", [])
    field_name = str(loc[-1]) if loc else "unknown"
    msg = first_error.get("msg", "Invalid parameter")
    readable_message = f"{field_name}: {msg}"

    logger.bind(
        request_id=request_id,
        detail=readable_message,
    ).warning("Request validation failed")

    return _fail_response(
        request_id,
        SystemErrorCode.INVALID_PARAMS.http_status,
        SystemErrorCode.INVALID_PARAMS.code,
        readable_message,
        {"errors": errors},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> ORJSONResponse:
    """
    处理框架层面的 HTTP 异常 (如 404 Not Found, 405 Method Not Allowed)
    """
    request_id = _get_request_id(request)
    code_str = "not_found" if exc.status_code == 404 else "http_error"

    logger.bind(
        request_id=request_id,
        status_code=exc.status_code,
        detail=str(exc.detail),
    ).warning("Framework HTTP exception occurred")

    return _fail_response(request_id, exc.status_code, code_str, str(exc.detail))


async def sqlalchemy_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> ORJSONResponse:
    """
    处理未被业务层转换的数据库异常，屏蔽原始 SQL 错误信息
    """
    request_id = _get_request_id(request)

    logger.opt(exception=exc).bind(request_id=request_id).error(
        "Database exception occurred"
    )

    return _fail_response(
        request_id,
        SystemErrorCode.DB_ERROR.http_status,
        SystemErrorCode.DB_ERROR.code,
        SystemErrorCode.DB_ERROR.msg,
    )


async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """
    处理所有未捕获的异常 (500 Internal Server Error)
    """
    request_id = _get_request_id(request)

    logger.opt(exception=exc).bind(request_id=request_id).error(
        "Unhandled system exception occurred"
    )

    return _fail_response(
        request_id,
        SystemErrorCode.INTERNAL_ERROR.http_status,
        SystemErrorCode.INTERNAL_ERROR.code,
        SystemErrorCode.INTERNAL_ERROR.msg,
    )


# ------------------------------------------------------------------------------
# 4. 异常处理器注册函数
# ------------------------------------------------------------------------------


def register_exception_handlers(app: FastAPI) -> None:
    """
    统一注册所有异常处理器。
    应在 main.py 中调用。
    """
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)  # type: ignore
    app.add_exception_handler(Exception, general_exception_handler)
