"""请求上下文依赖。

会话令牌只携带成员 ID 与邮箱，服务层通过显式传入的 `SessionClaims` 判定身份，
不维护任何全局“当前用户”状态。
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clubhours_api.core import rate_limit
from clubhours_api.core.config import get_settings
from clubhours_api.core.security import SessionClaims, decode_session_token, session_invalid

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionClaims:
    """解析 Bearer 会话令牌，缺失或无效时返回 401。"""
    if credentials is None or not credentials.credentials:
        raise session_invalid()
    return decode_session_token(credentials.credentials)


def limit_auth_by_ip(request: Request) -> None:
    """登录、成员选择与密码重置接口按客户端 IP 限流。"""
    client_ip = request.client.host if request.client else "unknown"
    rate_limit.hit("auth", get_settings().rate_limit_auth, client_ip)


def limit_reads(claims: SessionClaims = Depends(get_session_claims)) -> None:
    rate_limit.hit("read", get_settings().rate_limit_read, claims.profile_id)


def limit_writes(claims: SessionClaims = Depends(get_session_claims)) -> None:
    rate_limit.hit("write", get_settings().rate_limit_write, claims.profile_id)
