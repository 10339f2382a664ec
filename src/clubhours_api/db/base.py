"""数据库基础模型导出。"""

from clubhours_api.models.base import Base

__all__ = ["Base"]
