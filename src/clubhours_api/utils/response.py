"""统一响应结构工具。"""

from datetime import datetime, timezone
from typing import Any

from fastapi import Request

DEFAULT_ERROR_MESSAGE = "Interner Serverfehler"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def success(request: Request, data: dict[str, Any]) -> dict[str, Any]:
    """构造统一成功响应结构（业务字段平铺在顶层）。

    请求 ID 只通过响应头返回，保证相同数据的响应体逐字节一致。
    """
    return {"success": True, **data}


def error_payload(
    request: Request,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """构造统一错误响应结构。"""
    final_details = {
        "method": request.method.upper(),
        "path": request.url.path,
        "timestamp": _utc_now_iso(),
        "retryable": False,
    }
    if details:
        final_details.update(details)
    return {
        "success": False,
        "message": message,
        "error": {
            "code": code,
            "details": final_details,
        },
        "request_id": _request_id(request),
    }
