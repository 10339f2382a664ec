"""工时记录接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from clubhours_api.core.security import SessionClaims
from clubhours_api.db.session import get_db
from clubhours_api.dependencies import get_session_claims, limit_reads, limit_writes
from clubhours_api.models.work_hours import WorkHourEntry
from clubhours_api.schemas.common import ErrorResponse, MessageResponse
from clubhours_api.schemas.work_hours import WorkHourEntryListResponse, WorkHourEntryRequest, WorkHourEntryResponse
from clubhours_api.services import ledger
from clubhours_api.services.directory import DirectoryClient, get_directory
from clubhours_api.utils.clock import local_today
from clubhours_api.utils.response import success

router = APIRouter(prefix="/arbeitsstunden", tags=["work-hours"])

_WRITE_ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


def _entry_data(entry: WorkHourEntry) -> dict:
    return {
        "id": entry.id,
        "profile_id": entry.profile_id,
        "date": entry.work_date.isoformat(),
        "description": entry.description,
        "hours": float(entry.hours),
    }


@router.get(
    "",
    dependencies=[Depends(limit_reads)],
    summary="查询本人工时记录",
    description="按年度返回当前会话成员的工时记录，按日期排序；未指定年度时取当前年度。",
    status_code=status.HTTP_200_OK,
    response_model=WorkHourEntryListResponse,
    responses={401: {"model": ErrorResponse}},
)
def list_entries(
    request: Request,
    year: int | None = Query(default=None, ge=2000, le=2100, description="年度。"),
    claims: SessionClaims = Depends(get_session_claims),
    db: Session = Depends(get_db),
):
    """查询本人工时记录。"""
    target_year = year or local_today().year
    entries = ledger.list_by_profile(db, claims.profile_id, target_year)
    return success(request, {"year": target_year, "entries": [_entry_data(entry) for entry in entries]})


@router.get(
    "/{entry_id}",
    dependencies=[Depends(limit_reads)],
    summary="查询单条工时记录",
    description="本人或同一家庭成员可查看。",
    status_code=status.HTTP_200_OK,
    response_model=WorkHourEntryResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_entry(
    entry_id: UUID,
    request: Request,
    claims: SessionClaims = Depends(get_session_claims),
    db: Session = Depends(get_db),
    directory: DirectoryClient = Depends(get_directory),
):
    """查询单条工时记录。"""
    entry = db.get(WorkHourEntry, entry_id)
    family_member_ids = None
    if entry is not None and entry.profile_id != claims.profile_id:
        # 仅在查看他人记录时才需要查询家庭关系。
        family_member_ids = directory.family_of(claims.profile_id).member_ids
    entry = ledger.get(db, claims, entry_id, family_member_ids=family_member_ids)
    return success(request, {"message": "Eintrag geladen.", "entry": _entry_data(entry)})


@router.post(
    "",
    dependencies=[Depends(limit_writes)],
    summary="新增工时记录",
    description="同一成员同一天只能有一条记录；日期不能晚于今天，且只能是当前年度（一月可补录上一年度）。",
    status_code=status.HTTP_200_OK,
    response_model=WorkHourEntryResponse,
    responses=_WRITE_ERRORS,
)
def create_entry(
    payload: WorkHourEntryRequest,
    request: Request,
    claims: SessionClaims = Depends(get_session_claims),
    db: Session = Depends(get_db),
):
    """新增工时记录。"""
    entry = ledger.create(
        db,
        claims,
        work_date=payload.work_date,
        description=payload.description,
        hours=payload.hours,
    )
    db.commit()
    db.refresh(entry)
    return success(request, {"message": "Eintrag erfolgreich gespeichert.", "entry": _entry_data(entry)})


@router.put(
    "/{entry_id}",
    dependencies=[Depends(limit_writes)],
    summary="修改工时记录",
    description="只能修改本人的记录；新日期不能与本人其他记录冲突。",
    status_code=status.HTTP_200_OK,
    response_model=WorkHourEntryResponse,
    responses=_WRITE_ERRORS,
)
def update_entry(
    entry_id: UUID,
    payload: WorkHourEntryRequest,
    request: Request,
    claims: SessionClaims = Depends(get_session_claims),
    db: Session = Depends(get_db),
):
    """修改工时记录。"""
    entry = ledger.update(
        db,
        claims,
        entry_id,
        work_date=payload.work_date,
        description=payload.description,
        hours=payload.hours,
    )
    db.commit()
    db.refresh(entry)
    return success(request, {"message": "Eintrag erfolgreich aktualisiert.", "entry": _entry_data(entry)})


@router.delete(
    "/{entry_id}",
    dependencies=[Depends(limit_writes)],
    summary="删除工时记录",
    description="只能删除本人且仍在可编辑年度内的记录。",
    status_code=status.HTTP_200_OK,
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def delete_entry(
    entry_id: UUID,
    request: Request,
    claims: SessionClaims = Depends(get_session_claims),
    db: Session = Depends(get_db),
):
    """删除工时记录。"""
    ledger.delete(db, claims, entry_id, today=local_today())
    db.commit()
    return success(request, {"message": "Eintrag erfolgreich gelöscht."})
