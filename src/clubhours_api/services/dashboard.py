"""工时看板聚合。

输入成员 ID 与年度，输出个人或家庭维度的完成进度。
结果只取决于目录数据与账本数据，相同输入多次计算得到完全一致的结构。
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Any

from sqlalchemy.orm import Session

from clubhours_api.models.work_hours import WorkHourEntry
from clubhours_api.services import ledger
from clubhours_api.services.directory import DirectoryClient, ProfileRecord

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def _q(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def percentage(completed: Decimal, required: Decimal) -> Decimal:
    """完成百分比，截断到 [0, 100]；无需完成工时时视为 100。"""
    if required <= 0:
        return HUNDRED
    raw = completed / required * HUNDRED
    return _q(max(Decimal("0"), min(HUNDRED, raw)))


@dataclass(frozen=True)
class EntryView:
    entry_id: str
    work_date: str
    description: str
    hours: Decimal

    @classmethod
    def from_model(cls, entry: WorkHourEntry) -> "EntryView":
        return cls(
            entry_id=str(entry.id),
            work_date=entry.work_date.isoformat(),
            description=entry.description,
            hours=_q(Decimal(entry.hours)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entry_id,
            "date": self.work_date,
            "description": self.description,
            "hours": float(self.hours),
        }


@dataclass(frozen=True)
class MemberContribution:
    """单个成员在年度内的贡献。"""

    profile_id: str
    name: str
    completed: Decimal
    required: Decimal
    entries: tuple[EntryView, ...]

    @property
    def percentage(self) -> Decimal:
        return percentage(self.completed, self.required)

    @property
    def is_complete(self) -> bool:
        return self.completed >= self.required

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "name": self.name,
            "completed": float(_q(self.completed)),
            "required": float(_q(self.required)),
            "percentage": float(self.percentage),
            "is_complete": self.is_complete,
            "entries": [entry.to_dict() for entry in self.entries],
        }


@dataclass(frozen=True)
class PersonalSummary:
    """单人看板。"""

    member: MemberContribution

    kind = "personal"

    def to_dict(self) -> dict[str, Any]:
        return self.member.to_dict()


@dataclass(frozen=True)
class FamilySummary:
    """家庭看板，成员按姓名排序。"""

    family_unit_id: str
    members: tuple[MemberContribution, ...]

    kind = "family"

    @property
    def completed(self) -> Decimal:
        return sum((member.completed for member in self.members), Decimal("0"))

    @property
    def required(self) -> Decimal:
        return sum((member.required for member in self.members), Decimal("0"))

    @property
    def remaining(self) -> Decimal:
        return max(Decimal("0"), self.required - self.completed)

    @property
    def percentage(self) -> Decimal:
        return percentage(self.completed, self.required)

    @property
    def is_complete(self) -> bool:
        return self.completed >= self.required

    def to_dict(self) -> dict[str, Any]:
        return {
            "family_unit_id": self.family_unit_id,
            "completed": float(_q(self.completed)),
            "required": float(_q(self.required)),
            "remaining": float(_q(self.remaining)),
            "percentage": float(self.percentage),
            "is_complete": self.is_complete,
            "members": [member.to_dict() for member in self.members],
        }


def contribution_of(db: Session, profile: ProfileRecord, year: int) -> MemberContribution:
    """汇总单个成员的年度工时。"""
    entries = tuple(EntryView.from_model(entry) for entry in ledger.list_by_profile(db, profile.profile_id, year))
    completed = sum((entry.hours for entry in entries), Decimal("0"))
    return MemberContribution(
        profile_id=profile.profile_id,
        name=profile.display_name,
        completed=_q(completed),
        required=profile.required_hours_in(year),
        entries=entries,
    )


def build_dashboard(db: Session, directory: DirectoryClient, profile_id: str, year: int) -> PersonalSummary | FamilySummary:
    """构建看板。目录不可用时直接抛出 `DirectoryUnavailable`，不返回部分结果。"""
    family = directory.family_of(profile_id)
    members = tuple(contribution_of(db, profile, year) for profile in family.members)

    if len(members) == 1 or family.family_unit_id is None:
        own = next(member for member in members if member.profile_id == profile_id)
        logger.info("dashboard built kind=personal profile_id=%s year=%s", profile_id, year)
        return PersonalSummary(member=own)

    logger.info(
        "dashboard built kind=family profile_id=%s family_unit_id=%s members=%s year=%s",
        profile_id,
        family.family_unit_id,
        len(members),
        year,
    )
    return FamilySummary(family_unit_id=family.family_unit_id, members=members)


def to_dict(summary: PersonalSummary | FamilySummary, year: int) -> dict[str, Any]:
    """序列化看板为带类型标签的结构。"""
    return {"year": year, "kind": summary.kind, summary.kind: summary.to_dict()}
