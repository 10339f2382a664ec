"""工时看板接口。"""

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.orm import Session

from clubhours_api.core.security import SessionClaims
from clubhours_api.db.session import get_db
from clubhours_api.dependencies import get_session_claims, limit_reads
from clubhours_api.schemas.common import ErrorResponse
from clubhours_api.schemas.dashboard import DashboardResponse
from clubhours_api.services import dashboard
from clubhours_api.services.directory import DirectoryClient, get_directory
from clubhours_api.utils.response import success

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get(
    "/{year}",
    dependencies=[Depends(limit_reads)],
    summary="年度工时看板",
    description=(
        "返回当前会话成员在指定年度的工时进度。成员属于多人家庭时返回家庭合计（`kind=family`），"
        "否则返回个人进度（`kind=personal`）。成员目录不可用时返回 503，不返回部分数据。"
    ),
    status_code=status.HTTP_200_OK,
    response_model=DashboardResponse,
    response_model_exclude_none=True,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def get_dashboard(
    request: Request,
    year: int = Path(ge=2000, le=2100, description="年度。"),
    claims: SessionClaims = Depends(get_session_claims),
    db: Session = Depends(get_db),
    directory: DirectoryClient = Depends(get_directory),
):
    """年度工时看板。"""
    summary = dashboard.build_dashboard(db, directory, claims.profile_id, year)
    return success(request, dashboard.to_dict(summary, year))
