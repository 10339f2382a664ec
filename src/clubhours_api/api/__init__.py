"""路由模块导出集合。"""

from . import auth, dashboard, health, work_hours

__all__ = [
    "auth",
    "dashboard",
    "health",
    "work_hours",
]
