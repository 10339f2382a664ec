"""登录编排：凭据校验 → 目录解析 → 会话签发 / 成员选择。

状态流转：

    UNAUTHENTICATED → CREDENTIAL_VERIFYING → SINGLE_CANDIDATE → AUTHENTICATED
                                           ↘ AMBIGUOUS_CANDIDATES → (select) → AUTHENTICATED

登录结果是带 `kind` 标签的变体（SingleSession / AmbiguousSelection / AuthFailure），
调用方按标签分支，不再靠字段是否存在来推断结构。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
import logging
from typing import Literal, Protocol

from sqlalchemy.orm import Session

from clubhours_api.core.errors import InvalidCredential, NoSuchProfile, ServiceError
from clubhours_api.core.security import SessionClaims, issue_session_token
from clubhours_api.services import credentials, reset_tokens, selection_tokens
from clubhours_api.services.credentials import normalize_email
from clubhours_api.services.directory import DirectoryClient

logger = logging.getLogger(__name__)


class AuthState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    CREDENTIAL_VERIFYING = "credential_verifying"
    SINGLE_CANDIDATE = "single_candidate"
    AMBIGUOUS_CANDIDATES = "ambiguous_candidates"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class SessionUser:
    """会话对应的成员（id, name, email）。"""

    id: str
    name: str
    email: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass(frozen=True)
class SingleSession:
    token: str
    claims: SessionClaims
    user: SessionUser
    kind: Literal["session"] = "session"

    @property
    def state(self) -> AuthState:
        return AuthState.AUTHENTICATED


@dataclass(frozen=True)
class AmbiguousSelection:
    selection_token: str
    candidates: tuple[SessionUser, ...]
    kind: Literal["selection"] = "selection"

    @property
    def state(self) -> AuthState:
        return AuthState.AMBIGUOUS_CANDIDATES


@dataclass(frozen=True)
class AuthFailure:
    error: ServiceError
    kind: Literal["failure"] = "failure"

    @property
    def state(self) -> AuthState:
        return AuthState.UNAUTHENTICATED


LoginResult = SingleSession | AmbiguousSelection | AuthFailure


@dataclass(frozen=True)
class IssuedReset:
    """已签发、待投递的重置令牌。"""

    email: str
    token: str
    profile_id: str


class ResetNotifier(Protocol):
    """重置链接投递方（邮件发送由外部系统完成）。"""

    def send_reset(self, email: str, token: str, profile_id: str) -> None: ...


class LoggingResetNotifier:
    """默认投递实现：只记录“已签发重置链接”，不记录令牌本身。"""

    def send_reset(self, email: str, token: str, profile_id: str) -> None:
        logger.info("password reset link issued profile_id=%s", profile_id)


def get_reset_notifier() -> ResetNotifier:
    return LoggingResetNotifier()


def _mint_session(user: SessionUser) -> SingleSession:
    token, claims = issue_session_token(profile_id=user.id, email=normalize_email(user.email))
    return SingleSession(token=token, claims=claims, user=user)


def login(db: Session, directory: DirectoryClient, email: str, secret: str) -> LoginResult:
    """执行登录。

    凭据错误与“目录中无此邮箱”都返回 `AuthFailure(InvalidCredential)`，对外不可区分；
    目录不可用（`DirectoryUnavailable`）直接向上抛出，由调用方按可重试错误处理。
    """
    normalized = normalize_email(email)
    try:
        credentials.verify(db, normalized, secret)
    except InvalidCredential as exc:
        logger.info("login rejected reason=invalid_credential")
        return AuthFailure(error=exc)

    try:
        profiles = directory.resolve(normalized)
    except NoSuchProfile:
        logger.warning("login rejected reason=no_directory_profile")
        return AuthFailure(error=InvalidCredential())

    if len(profiles) == 1:
        profile = profiles[0]
        logger.info("login succeeded profile_id=%s", profile.profile_id)
        return _mint_session(SessionUser(id=profile.profile_id, name=profile.display_name, email=profile.email))

    token, _ = selection_tokens.issue(db, normalized, profiles)
    logger.info("login requires member selection candidates=%s", len(profiles))
    return AmbiguousSelection(
        selection_token=token,
        candidates=tuple(
            SessionUser(id=profile.profile_id, name=profile.display_name, email=profile.email) for profile in profiles
        ),
    )


def select_member(db: Session, selection_token: str, profile_id: str) -> SingleSession:
    """兑换选择令牌并为选定成员签发会话。"""
    chosen = selection_tokens.redeem(db, selection_token, profile_id)
    logger.info("member selected profile_id=%s", chosen.profile_id)
    return _mint_session(SessionUser(id=chosen.profile_id, name=chosen.name, email=chosen.email))


def request_password_reset(db: Session, directory: DirectoryClient, email: str) -> IssuedReset | None:
    """申请重置密码。

    邮箱不在目录中时返回 None，调用方对外返回相同结果；目录不可用时抛出 `DirectoryUnavailable`。
    令牌只 flush，由调用方提交后再交给 `ResetNotifier` 投递。
    """
    normalized = normalize_email(email)
    try:
        profiles = directory.resolve(normalized)
    except NoSuchProfile:
        logger.info("password reset requested for unknown email")
        return None

    profile = profiles[0]
    token = reset_tokens.issue(db, normalized, profile.profile_id)
    return IssuedReset(email=normalized, token=token, profile_id=profile.profile_id)


def reset_password(db: Session, token: str, profile_id: str, new_secret: str) -> None:
    """用重置令牌设置新密码；凭据不存在时即创建。"""
    credentials.check_password_policy(new_secret)
    email = reset_tokens.redeem(db, token, profile_id)
    credentials.set_password(db, email, new_secret)
    logger.info("password reset completed profile_id=%s", profile_id)
