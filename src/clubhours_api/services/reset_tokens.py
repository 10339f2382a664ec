"""重置密码令牌服务。"""

from datetime import datetime, timedelta
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from clubhours_api.core.config import get_settings
from clubhours_api.core.errors import InvalidResetToken
from clubhours_api.core.security import hash_opaque_token, new_opaque_token
from clubhours_api.models.tokens import ResetToken
from clubhours_api.utils.clock import utc_now

logger = logging.getLogger(__name__)


def invalidate_for_email(db: Session, email: str, *, now: datetime | None = None) -> int:
    """作废该邮箱所有未使用的重置令牌，返回作废条数。"""
    current = now or utc_now()
    result = db.execute(
        update(ResetToken)
        .where(ResetToken.email == email)
        .where(ResetToken.consumed_at.is_(None))
        .values(consumed_at=current)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def issue(db: Session, email: str, profile_id: str, *, now: datetime | None = None) -> str:
    """签发重置令牌；同一邮箱此前未使用的令牌一并作废。调用方负责提交事务。"""
    issued_at = now or utc_now()
    invalidate_for_email(db, email, now=issued_at)

    token = new_opaque_token()
    db.add(
        ResetToken(
            token_hash=hash_opaque_token(token),
            email=email,
            profile_id=profile_id,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=get_settings().reset_token_ttl_seconds),
        )
    )
    db.flush()
    logger.info("reset token issued profile_id=%s", profile_id)
    return token


def redeem(db: Session, token: str, profile_id: str, *, now: datetime | None = None) -> str:
    """原子兑换重置令牌并返回绑定的邮箱。

    令牌未知、已使用、已过期或绑定的成员与 `profile_id` 不一致时抛出 `InvalidResetToken`。
    """
    current = now or utc_now()
    token_hash = hash_opaque_token(token)

    result = db.execute(
        update(ResetToken)
        .where(ResetToken.token_hash == token_hash)
        .where(ResetToken.profile_id == profile_id)
        .where(ResetToken.consumed_at.is_(None))
        .where(ResetToken.expires_at > current)
        .values(consumed_at=current)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidResetToken(reason="reset_token_invalid")

    email = db.execute(select(ResetToken.email).where(ResetToken.token_hash == token_hash)).scalar_one()
    logger.info("reset token redeemed profile_id=%s", profile_id)
    return email
