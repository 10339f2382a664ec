"""凭据模型。"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from clubhours_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Credential(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """登录凭据（邮箱 + 口令哈希）。

    同一邮箱可能对应目录中的多名成员（家庭共用邮箱），凭据按邮箱而非成员保存。
    """

    __tablename__ = "credentials"

    # 登录邮箱，统一小写后落库，全局唯一。
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    # 口令哈希，不存明文。
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
