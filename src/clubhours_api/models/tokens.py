"""一次性令牌模型。

令牌原文只返回给调用方一次；兑换通过条件更新完成，保证并发下只成功一次。
"""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from clubhours_api.models.base import Base, OneTimeTokenMixin


class SelectionToken(Base, OneTimeTokenMixin):
    """同一邮箱命中多名成员时签发的成员选择令牌。"""

    __tablename__ = "selection_tokens"

    # 有序候选列表：[{"id", "name", "email"}]。
    candidates: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)


class ResetToken(Base, OneTimeTokenMixin):
    """重置密码令牌。"""

    __tablename__ = "reset_tokens"

    # 申请重置时解析到的成员 ID，重置请求中的 userId 必须与之一致。
    profile_id: Mapped[str] = mapped_column(String(64), nullable=False)
