"""请求限流。

登录与密码重置接口按客户端 IP 计数，已登录接口按成员 ID 计数；
计数保存在进程内存中，多实例部署时各实例独立计数。
"""

from functools import lru_cache
import logging
import math
import time

from limits import RateLimitItem, parse_many
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from clubhours_api.core.config import get_settings
from clubhours_api.core.errors import RateLimited

logger = logging.getLogger(__name__)

_storage = MemoryStorage()
_limiter = MovingWindowRateLimiter(_storage)


@lru_cache
def _parse(spec: str) -> tuple[RateLimitItem, ...]:
    return tuple(parse_many(spec))


def hit(scope: str, spec: str, key: str) -> None:
    """记录一次请求，任一限额耗尽时抛出 `RateLimited`。"""
    if not get_settings().rate_limit_enabled:
        return
    for item in _parse(spec):
        if _limiter.hit(item, scope, key):
            continue
        reset_at = _limiter.get_window_stats(item, scope, key)[0]
        logger.warning("rate limited scope=%s limit=%s", scope, item)
        raise RateLimited(
            scope=scope,
            limit=str(item),
            retry_after_seconds=max(1, math.ceil(reset_at - time.time())),
        )


def reset() -> None:
    """清空全部计数。"""
    _storage.reset()
