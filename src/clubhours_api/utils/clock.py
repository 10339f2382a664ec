"""业务时钟。"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from clubhours_api.core.config import get_settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_today() -> date:
    """返回配置时区下的“今天”，工时日期校验以此为准。"""
    return datetime.now(ZoneInfo(get_settings().timezone)).date()


def as_utc(value: datetime) -> datetime:
    """SQLite 读回的时间不带时区，统一视为 UTC。"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
