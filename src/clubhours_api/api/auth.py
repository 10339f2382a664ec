"""认证接口：登录、成员选择、重置密码、当前会话。"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from clubhours_api.core.security import SessionClaims
from clubhours_api.db.session import get_db
from clubhours_api.dependencies import get_session_claims, limit_auth_by_ip, limit_reads
from clubhours_api.schemas.auth import (
    CurrentUserResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MemberSelectionResponse,
    ResetPasswordRequest,
    SelectMemberRequest,
    SessionResponse,
)
from clubhours_api.schemas.common import ErrorResponse, MessageResponse
from clubhours_api.services import auth_flow
from clubhours_api.services.auth_flow import AmbiguousSelection, AuthFailure, ResetNotifier, get_reset_notifier
from clubhours_api.services.directory import DirectoryClient, get_directory
from clubhours_api.utils.response import success

router = APIRouter(tags=["auth"])

MULTIPLE_MEMBERS_MESSAGE = "Mehrere Mitglieder mit dieser E-Mail-Adresse gefunden. Bitte wählen Sie Ihr Profil aus."
FORGOT_PASSWORD_MESSAGE = (
    "Falls die E-Mail-Adresse bei uns registriert ist, wurde ein Link zum Zurücksetzen des Passworts versendet."
)
RESET_PASSWORD_MESSAGE = "Passwort erfolgreich zurückgesetzt. Sie können sich jetzt mit Ihrem neuen Passwort anmelden."


@router.post(
    "/login",
    dependencies=[Depends(limit_auth_by_ip)],
    summary="邮箱密码登录",
    description=(
        "校验密码后按邮箱查询成员目录：唯一成员直接返回会话令牌；"
        "多名成员共用邮箱时返回候选列表与一次性选择令牌（`success=false, multiple=true`）。"
    ),
    status_code=status.HTTP_200_OK,
    response_model=SessionResponse | MemberSelectionResponse,
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    directory: DirectoryClient = Depends(get_directory),
):
    """登录。"""
    result = auth_flow.login(db, directory, payload.email, payload.password)
    if isinstance(result, AuthFailure):
        raise result.error

    db.commit()
    if isinstance(result, AmbiguousSelection):
        return {
            "success": False,
            "multiple": True,
            "users": [candidate.to_dict() for candidate in result.candidates],
            "selection_token": result.selection_token,
            "message": MULTIPLE_MEMBERS_MESSAGE,
        }
    return success(request, {"token": result.token, "user": result.user.to_dict()})


@router.post(
    "/select-member",
    dependencies=[Depends(limit_auth_by_ip)],
    summary="选择成员",
    description="兑换登录时签发的选择令牌，为所选成员签发会话令牌。令牌只能使用一次。",
    status_code=status.HTTP_200_OK,
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def select_member(
    payload: SelectMemberRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """成员选择。"""
    result = auth_flow.select_member(db, payload.selection_token, payload.member_id)
    db.commit()
    return success(request, {"token": result.token, "user": result.user.to_dict()})


@router.post(
    "/forgotPassword",
    dependencies=[Depends(limit_auth_by_ip)],
    summary="申请重置密码",
    description="无论邮箱是否存在都返回相同结果；成员目录不可用时返回 503。",
    status_code=status.HTTP_200_OK,
    response_model=MessageResponse,
    responses={503: {"model": ErrorResponse}},
)
def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    directory: DirectoryClient = Depends(get_directory),
    notifier: ResetNotifier = Depends(get_reset_notifier),
):
    """申请重置密码。"""
    issued = auth_flow.request_password_reset(db, directory, payload.email)
    db.commit()
    # 令牌提交后再投递。
    if issued is not None:
        notifier.send_reset(issued.email, issued.token, issued.profile_id)
    return success(request, {"message": FORGOT_PASSWORD_MESSAGE})


@router.post(
    "/resetPassword",
    dependencies=[Depends(limit_auth_by_ip)],
    summary="重置密码",
    description="使用重置令牌设置新密码；首次设置即创建登录凭据。",
    status_code=status.HTTP_200_OK,
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def reset_password(
    payload: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """重置密码。"""
    auth_flow.reset_password(db, payload.token, payload.userId, payload.password)
    db.commit()
    return success(request, {"message": RESET_PASSWORD_MESSAGE})


def _current_user(
    request: Request,
    claims: SessionClaims,
    directory: DirectoryClient,
) -> dict:
    profile = directory.get_profile(claims.profile_id)
    return success(request, {"user": profile.as_candidate()})


@router.get(
    "/user",
    dependencies=[Depends(limit_reads)],
    summary="当前会话成员",
    description="返回会话令牌对应成员的最新目录资料。",
    status_code=status.HTTP_200_OK,
    response_model=CurrentUserResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def get_user(
    request: Request,
    claims: SessionClaims = Depends(get_session_claims),
    directory: DirectoryClient = Depends(get_directory),
):
    """当前会话成员。"""
    return _current_user(request, claims, directory)


@router.get(
    "/verify-token",
    dependencies=[Depends(limit_reads)],
    summary="校验会话令牌",
    description="令牌有效时返回成员资料，无效时返回 401。",
    status_code=status.HTTP_200_OK,
    response_model=CurrentUserResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def verify_token(
    request: Request,
    claims: SessionClaims = Depends(get_session_claims),
    directory: DirectoryClient = Depends(get_directory),
):
    """校验会话令牌。"""
    return _current_user(request, claims, directory)
