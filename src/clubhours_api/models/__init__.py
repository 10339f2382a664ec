"""ORM 模型导出集合。"""

from clubhours_api.models.credential import Credential
from clubhours_api.models.tokens import ResetToken, SelectionToken
from clubhours_api.models.work_hours import WorkHourEntry

__all__ = [
    "Credential",
    "ResetToken",
    "SelectionToken",
    "WorkHourEntry",
]
