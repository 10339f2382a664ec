"""工时账本服务。

同一成员同一天最多一条记录：写入前先查重，数据库唯一约束兜底并发写入。
服务函数只 flush 不 commit，事务边界由路由层控制。
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubhours_api.core.config import get_settings
from clubhours_api.core.errors import DuplicateEntryForDate, NotFound, Unauthorized, ValidationError
from clubhours_api.core.security import SessionClaims
from clubhours_api.models.work_hours import WorkHourEntry
from clubhours_api.utils.clock import local_today

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryInput:
    """经过校验与规范化的工时输入。"""

    work_date: date
    description: str
    hours: Decimal


def _allowed_years(today: date) -> tuple[int, ...]:
    # 一月份为上一年度的补录宽限期。
    if today.month == 1:
        return (today.year, today.year - 1)
    return (today.year,)


def _ensure_open_year(work_date: date, today: date) -> None:
    allowed_years = _allowed_years(today)
    if work_date.year in allowed_years:
        return
    if len(allowed_years) == 2:
        message = (
            f"Arbeitsstunden können nur für {today.year} oder {today.year - 1} "
            "(Nachfrist bis Ende Januar) bearbeitet werden."
        )
    else:
        message = f"Arbeitsstunden können nur für das aktuelle Jahr {today.year} bearbeitet werden."
    raise ValidationError(message, reason="year_not_allowed", field="date", allowed_years=list(allowed_years))


def validate_entry(work_date: date, description: str, hours: Decimal | float | str, *, today: date | None = None) -> EntryInput:
    """校验日期、描述与工时，返回规范化后的输入。"""
    settings = get_settings()
    today = today or local_today()

    if work_date > today:
        raise ValidationError(
            "Das Datum darf nicht in der Zukunft liegen.",
            reason="date_in_future",
            field="date",
        )
    _ensure_open_year(work_date, today)

    try:
        amount = Decimal(str(hours))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("Ungültige Stundenangabe.", reason="hours_not_numeric", field="hours") from exc
    if not amount.is_finite() or amount <= 0 or amount > settings.ledger_max_hours_per_entry:
        raise ValidationError(
            f"Die Stunden müssen größer als 0 und höchstens {settings.ledger_max_hours_per_entry} sein.",
            reason="hours_out_of_range",
            field="hours",
        )
    if amount % settings.ledger_hours_step != 0:
        raise ValidationError(
            f"Die Stunden müssen in Schritten von {settings.ledger_hours_step} angegeben werden.",
            reason="hours_step",
            field="hours",
        )

    text = (description or "").strip()
    if not text:
        raise ValidationError("Die Tätigkeit darf nicht leer sein.", reason="description_empty", field="description")
    if len(text) > settings.ledger_description_max_length:
        raise ValidationError(
            f"Die Tätigkeit darf höchstens {settings.ledger_description_max_length} Zeichen lang sein.",
            reason="description_too_long",
            field="description",
        )

    return EntryInput(work_date=work_date, description=text, hours=amount.quantize(Decimal("0.01")))


def _ensure_date_free(db: Session, profile_id: str, work_date: date, *, exclude_id: UUID | None = None) -> None:
    stmt = select(WorkHourEntry.id).where(WorkHourEntry.profile_id == profile_id).where(WorkHourEntry.work_date == work_date)
    if exclude_id is not None:
        stmt = stmt.where(WorkHourEntry.id != exclude_id)
    if db.execute(stmt.limit(1)).first() is not None:
        raise DuplicateEntryForDate(reason="duplicate_entry_for_date", date=work_date.isoformat())


def _flush_or_duplicate(db: Session, work_date: date) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.info("duplicate work date rejected by constraint date=%s", work_date.isoformat())
        raise DuplicateEntryForDate(reason="duplicate_entry_for_date", date=work_date.isoformat()) from exc


def _load(db: Session, entry_id: UUID) -> WorkHourEntry:
    entry = db.get(WorkHourEntry, entry_id)
    if entry is None:
        raise NotFound(reason="entry_not_found")
    return entry


def _ensure_owner(claims: SessionClaims, entry: WorkHourEntry) -> None:
    if entry.profile_id != claims.profile_id:
        raise Unauthorized(reason="not_entry_owner")


def create(
    db: Session,
    claims: SessionClaims,
    *,
    work_date: date,
    description: str,
    hours: Decimal | float | str,
    today: date | None = None,
) -> WorkHourEntry:
    """为当前会话成员新增工时记录。"""
    data = validate_entry(work_date, description, hours, today=today)
    _ensure_date_free(db, claims.profile_id, data.work_date)

    entry = WorkHourEntry(
        profile_id=claims.profile_id,
        work_date=data.work_date,
        description=data.description,
        hours=data.hours,
    )
    db.add(entry)
    _flush_or_duplicate(db, data.work_date)
    logger.info("work hour entry created id=%s profile_id=%s", entry.id, claims.profile_id)
    return entry


def update(
    db: Session,
    claims: SessionClaims,
    entry_id: UUID,
    *,
    work_date: date,
    description: str,
    hours: Decimal | float | str,
    today: date | None = None,
) -> WorkHourEntry:
    """修改本人的工时记录；新日期不能与本人其他记录冲突。"""
    entry = _load(db, entry_id)
    _ensure_owner(claims, entry)
    today = today or local_today()
    # 已关闭年度的记录不可再改动。
    _ensure_open_year(entry.work_date, today)
    data = validate_entry(work_date, description, hours, today=today)
    _ensure_date_free(db, entry.profile_id, data.work_date, exclude_id=entry.id)

    entry.work_date = data.work_date
    entry.description = data.description
    entry.hours = data.hours
    _flush_or_duplicate(db, data.work_date)
    logger.info("work hour entry updated id=%s", entry.id)
    return entry


def delete(db: Session, claims: SessionClaims, entry_id: UUID, *, today: date | None = None) -> None:
    """删除本人的工时记录；已关闭年度的记录不可删除。"""
    entry = _load(db, entry_id)
    _ensure_owner(claims, entry)
    _ensure_open_year(entry.work_date, today or local_today())
    db.delete(entry)
    db.flush()
    logger.info("work hour entry deleted id=%s", entry_id)


def get(db: Session, claims: SessionClaims, entry_id: UUID, *, family_member_ids: frozenset[str] | None = None) -> WorkHourEntry:
    """读取单条记录：本人或同一家庭成员可见。

    `family_member_ids` 为调用方所在家庭单元的成员 ID 集合；未提供时仅允许本人。
    """
    entry = _load(db, entry_id)
    if entry.profile_id == claims.profile_id:
        return entry
    if family_member_ids and entry.profile_id in family_member_ids:
        return entry
    raise Unauthorized(reason="not_entry_owner")


def list_by_profile(db: Session, profile_id: str, year: int) -> list[WorkHourEntry]:
    """按日期、ID 顺序返回成员在指定年度的全部记录。"""
    stmt = (
        select(WorkHourEntry)
        .where(WorkHourEntry.profile_id == profile_id)
        .where(WorkHourEntry.work_date >= date(year, 1, 1))
        .where(WorkHourEntry.work_date <= date(year, 12, 31))
        .order_by(WorkHourEntry.work_date, WorkHourEntry.id)
    )
    return list(db.execute(stmt).scalars().all())
