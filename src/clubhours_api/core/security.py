"""会话令牌签发与校验工具。

会话完全无状态：服务端不保存会话，仅凭签名与过期时间判定有效性。
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import hashlib
import secrets

import jwt
from fastapi import HTTPException, status
from jwt import InvalidTokenError

from clubhours_api.core.config import get_settings

SESSION_TOKEN_TYPE = "session"


def session_invalid() -> HTTPException:
    """构造会话无效异常，每次抛出使用新实例。"""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "code": "SESSION_INVALID",
            "message": "Nicht angemeldet oder Sitzung abgelaufen.",
            "details": {"reason": "session_invalid"},
        },
    )


@dataclass(frozen=True)
class SessionClaims:
    """已认证会话声明，显式传入每个业务调用。"""

    # 目录中的成员记录 ID。
    profile_id: str
    # 登录邮箱（已标准化）。
    email: str
    issued_at: datetime
    expires_at: datetime


def new_opaque_token() -> str:
    """生成不可猜测的一次性令牌。"""
    return secrets.token_urlsafe(32)


def hash_opaque_token(token: str) -> str:
    """一次性令牌只以摘要形式落库。"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_session_token(*, profile_id: str, email: str, now: datetime | None = None) -> tuple[str, SessionClaims]:
    """签发会话令牌。"""
    settings = get_settings()
    issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    expires_at = issued_at + timedelta(seconds=settings.auth_session_ttl_seconds)

    claims: dict[str, object] = {
        "sub": profile_id,
        "email": email,
        "iss": settings.auth_jwt_issuer,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "typ": SESSION_TOKEN_TYPE,
    }
    token = jwt.encode(claims, settings.auth_jwt_secret, algorithm=settings.auth_algorithms[0])
    return token, SessionClaims(profile_id=profile_id, email=email, issued_at=issued_at, expires_at=expires_at)


def decode_session_token(token: str) -> SessionClaims:
    """按配置解码并校验会话令牌。"""
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            key=settings.auth_jwt_secret,
            algorithms=settings.auth_algorithms,
            issuer=settings.auth_jwt_issuer,
            leeway=settings.auth_jwt_leeway_seconds,
            options={"require": ["sub", "exp", "iat"]},
        )
    except InvalidTokenError as exc:
        raise session_invalid() from exc

    # 拒绝其他用途的令牌被当作会话使用。
    if claims.get("typ") != SESSION_TOKEN_TYPE:
        raise session_invalid()

    profile_id = str(claims.get("sub") or "").strip()
    email = claims.get("email")
    if not profile_id or not isinstance(email, str):
        raise session_invalid()

    return SessionClaims(
        profile_id=profile_id,
        email=email,
        issued_at=datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc),
        expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
    )
