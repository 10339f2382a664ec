"""存活 / 就绪探针。"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from clubhours_api.db.session import get_db
from clubhours_api.schemas.common import ErrorResponse, HealthStatusResponse
from clubhours_api.utils.response import success

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "/live",
    summary="存活探针",
    description="进程可响应即返回 ok，不访问数据库与成员目录。",
    status_code=status.HTTP_200_OK,
    response_model=HealthStatusResponse,
)
def live(request: Request):
    return success(request, {"status": "ok"})


@router.get(
    "/ready",
    summary="就绪探针",
    description="凭据库与工时账本所在数据库可连通时返回 ready；数据库故障返回 503 `STORE_UNAVAILABLE`。",
    status_code=status.HTTP_200_OK,
    response_model=HealthStatusResponse,
    responses={503: {"model": ErrorResponse}},
)
def ready(request: Request, db: Session = Depends(get_db)):
    """成员目录是外部依赖，不计入就绪判断。"""
    db.execute(text("select 1"))
    return success(request, {"status": "ready"})
