"""
File: app/core/response.py
Description: 统一响应信封（Unified Response Envelope）

成功: {success: true,  message, error: null, data, request_id, timestamp}
失败: {success: false, message, error: <稳定错误码>, data, request_id, timestamp}

健康检查 /health 例外，直接返回原始 JSON。

Created: 2026-03-02
"""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar, cast

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ResponseBase(BaseModel):
    """
    响应基类
    """

    model_config = ConfigDict(from_attributes=True)

    success: bool = Field(default=True, description="是否成功")
    message: str = Field(default="Success", description="响应消息")
    error: str | None = Field(default=None, description="稳定错误码 (失败时)")
    request_id: str | None = Field(default=None, description="请求追踪ID")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="响应生成时间",
    )


class ResponseModel(ResponseBase, Generic[T]):
    """
    统一响应信封
    """

    data: T | None = Field(default=None, description="业务数据")

    @classmethod
    def ok(
        cls,
        data: T | None = None,
        message: str = "Success",
        request_id: str | None = None,
    ) -> "ResponseModel[T]":
        """
        构造成功响应
        """
        # 强制将 Pydantic 模型转换为 JSON 安全的字典
        if hasattr(data, "model_dump"):
            data = cast(Any, data).model_dump(mode="json")

        return cls(
            success=True,
            message=message,
            data=data,
            request_id=request_id,
        )

    @classmethod
    def fail(
        cls,
        error: str,
        message: str,
        data: Any = None,
        request_id: str | None = None,
    ) -> "ResponseModel[Any]":
        """
        构造失败响应
        """
        return cls(
            success=False,
            error=error,
            message=message,
            data=data,
            request_id=request_id,
        )
