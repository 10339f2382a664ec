"""成员选择令牌服务。

同一邮箱命中多名成员时，登录先签发选择令牌，用户选定成员后再兑换会话。
令牌只能兑换一次，且有固定有效期。
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from clubhours_api.core.config import get_settings
from clubhours_api.core.errors import CandidateNotInSet, InvalidSelectionToken
from clubhours_api.core.security import hash_opaque_token, new_opaque_token
from clubhours_api.models.tokens import SelectionToken
from clubhours_api.services.directory import ProfileRecord
from clubhours_api.utils.clock import as_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedCandidate:
    """兑换成功后选定的成员。"""

    profile_id: str
    name: str
    email: str


def issue(
    db: Session,
    email: str,
    candidates: list[ProfileRecord],
    *,
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """签发选择令牌，返回 (令牌原文, 过期时间)。调用方负责提交事务。"""
    issued_at = now or utc_now()
    expires_at = issued_at + timedelta(seconds=get_settings().selection_token_ttl_seconds)
    token = new_opaque_token()
    db.add(
        SelectionToken(
            token_hash=hash_opaque_token(token),
            email=email,
            candidates=[candidate.as_candidate() for candidate in candidates],
            issued_at=issued_at,
            expires_at=expires_at,
        )
    )
    db.flush()
    logger.info("selection token issued candidates=%s", len(candidates))
    return token, expires_at


def redeem(db: Session, token: str, profile_id: str, *, now: datetime | None = None) -> SelectedCandidate:
    """兑换选择令牌。

    - 令牌不存在、已使用或已过期：`InvalidSelectionToken`；
    - 选择的成员不在候选集中：`CandidateNotInSet`，令牌保持可用；
    - 否则以条件更新原子地标记已使用，并发兑换只有一个成功。
    """
    current = now or utc_now()
    token_hash = hash_opaque_token(token)

    record = db.execute(select(SelectionToken).where(SelectionToken.token_hash == token_hash)).scalar_one_or_none()
    if record is None or record.consumed_at is not None or as_utc(record.expires_at) <= current:
        raise InvalidSelectionToken(reason="selection_token_invalid")

    chosen = next((item for item in record.candidates if item.get("id") == profile_id), None)
    if chosen is None:
        raise CandidateNotInSet(reason="candidate_not_in_set")

    result = db.execute(
        update(SelectionToken)
        .where(SelectionToken.token_hash == token_hash)
        .where(SelectionToken.consumed_at.is_(None))
        .where(SelectionToken.expires_at > current)
        .values(consumed_at=current)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidSelectionToken(reason="selection_token_invalid")

    logger.info("selection token redeemed")
    return SelectedCandidate(
        profile_id=str(chosen["id"]),
        name=str(chosen.get("name") or ""),
        email=str(chosen.get("email") or ""),
    )
