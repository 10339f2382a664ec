"""全局通用结构。

用于定义统一响应包裹结构，便于在线接口文档展示与联调。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """基础结构，开启对象映射能力。"""

    model_config = ConfigDict(from_attributes=True)


class ErrorPayload(BaseSchema):
    """错误主体。"""

    code: str = Field(description="机器可识别错误码。")
    details: dict[str, Any] = Field(default_factory=dict, description="错误细节（请求方法、路径、原因、是否可重试等）。")


class ErrorResponse(BaseSchema):
    """统一错误响应。"""

    success: bool = Field(default=False, description="固定为 false。")
    message: str = Field(description="面向用户的错误提示（德语）。")
    error: ErrorPayload = Field(description="错误主体。")
    request_id: str | None = Field(default=None, description="服务端生成的请求追踪 ID。")


class HealthStatusResponse(BaseSchema):
    """健康检查返回结构。"""

    success: bool = Field(description="固定为 true。")
    status: str = Field(description="健康状态值，常见为 ok 或 ready。")


class MessageResponse(BaseSchema):
    """仅包含提示语的成功响应。"""

    success: bool = Field(description="请求是否成功。")
    message: str = Field(description="提示语。")
