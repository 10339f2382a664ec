"""工时账本模型。"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clubhours_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class WorkHourEntry(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """成员某一天的工时记录。"""

    __tablename__ = "work_hour_entries"
    # 同一成员同一天最多一条记录，由数据库唯一约束兜底并发写入。
    __table_args__ = (UniqueConstraint("profile_id", "work_date", name="uk_work_hour_entry_profile_date"),)

    # 目录中的成员记录 ID（逻辑关联，不声明外键）。
    profile_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # 工作日期（仅日期，无时间部分）。
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    # 工作内容描述。
    description: Mapped[str] = mapped_column(String(1024), nullable=False)
    # 工时，定点数，两位小数。
    hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
