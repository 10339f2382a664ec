"""工时记录请求/响应结构。"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from clubhours_api.schemas.common import BaseSchema


class WorkHourEntryRequest(BaseModel):
    """新增/修改工时记录请求，兼容前端使用的德语字段名。"""

    model_config = ConfigDict(populate_by_name=True)

    work_date: date = Field(
        validation_alias=AliasChoices("date", "Datum"),
        description="工作日期（YYYY-MM-DD）。",
        examples=["2026-05-01"],
    )
    description: str = Field(
        validation_alias=AliasChoices("description", "Tätigkeit"),
        max_length=1024,
        description="工作内容。",
        examples=["Platzpflege"],
    )
    hours: Decimal = Field(
        validation_alias=AliasChoices("hours", "Stunden"),
        description="工时，0.5 的整数倍，可传数字或数字字符串。",
        examples=[2.5],
    )


class WorkHourEntryData(BaseSchema):
    """单条工时记录。"""

    id: UUID = Field(description="记录 ID。")
    profile_id: str = Field(description="所属成员 ID。")
    date: str = Field(description="工作日期。")
    description: str = Field(description="工作内容。")
    hours: float = Field(description="工时。")


class WorkHourEntryResponse(BaseSchema):
    success: bool = Field(description="固定为 true。")
    message: str = Field(description="提示语。")
    entry: WorkHourEntryData = Field(description="记录内容。")


class WorkHourEntryListResponse(BaseSchema):
    success: bool = Field(description="固定为 true。")
    year: int = Field(description="查询年度。")
    entries: list[WorkHourEntryData] = Field(description="按日期排序的记录列表。")
