"""看板响应结构。"""

from typing import Literal

from pydantic import Field

from clubhours_api.schemas.common import BaseSchema


class DashboardEntryData(BaseSchema):
    id: str = Field(description="记录 ID。")
    date: str = Field(description="工作日期。")
    description: str = Field(description="工作内容。")
    hours: float = Field(description="工时。")


class MemberContributionData(BaseSchema):
    """单个成员的年度进度。"""

    profile_id: str = Field(description="成员 ID。")
    name: str = Field(description="展示名。")
    completed: float = Field(description="已完成工时。")
    required: float = Field(description="应完成工时（按年龄规则，可能为 0）。")
    percentage: float = Field(description="完成百分比，0-100。")
    is_complete: bool = Field(description="是否已完成。")
    entries: list[DashboardEntryData] = Field(description="按日期排序的记录。")


class FamilySummaryData(BaseSchema):
    """家庭合计进度。"""

    family_unit_id: str = Field(description="家庭标识。")
    completed: float = Field(description="家庭已完成工时合计。")
    required: float = Field(description="家庭应完成工时合计。")
    remaining: float = Field(description="剩余工时（不小于 0）。")
    percentage: float = Field(description="完成百分比，0-100。")
    is_complete: bool = Field(description="是否已完成。")
    members: list[MemberContributionData] = Field(description="按姓名排序的成员进度。")


class DashboardResponse(BaseSchema):
    """看板响应：`kind` 决定 `personal` 与 `family` 哪个字段有值。"""

    success: bool = Field(description="固定为 true。")
    year: int = Field(description="年度。")
    kind: Literal["personal", "family"] = Field(description="看板类型。")
    personal: MemberContributionData | None = Field(default=None, description="个人看板。")
    family: FamilySummaryData | None = Field(default=None, description="家庭看板。")
