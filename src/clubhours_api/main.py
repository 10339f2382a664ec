"""FastAPI 应用入口点。"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from clubhours_api.core.config import get_settings
from clubhours_api.core.logging import setup_logging
from clubhours_api.db.session import create_schema
from clubhours_api.exceptions import register_exception_handlers
from clubhours_api.middlewares import register_middlewares
from clubhours_api.api.router import api_router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if get_settings().db_auto_create_schema:
        create_schema()
    yield


def create_app() -> FastAPI:
    """创建并配置 FastAPI 应用实例。"""
    setup_logging(settings.log_level)
    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        debug=settings.app_debug,
        lifespan=lifespan,
        description=(
            "俱乐部成员工时接口。\n\n"
            "成功响应统一为 `{success: true, ...}`，错误响应统一为 "
            "`{success: false, message, error: {code, details}, request_id}`。\n"
            "需要登录的接口通过 `Authorization: Bearer <token>` 携带会话令牌。"
        ),
        openapi_tags=[
            {"name": "health", "description": "服务存活与就绪探针。"},
            {"name": "auth", "description": "登录、家庭成员选择与密码重置。"},
            {"name": "dashboard", "description": "个人与家庭年度工时进度。"},
            {"name": "work-hours", "description": "工时记录增删改查。"},
        ],
    )

    register_middlewares(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
