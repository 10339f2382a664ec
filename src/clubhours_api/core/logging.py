"""日志初始化。"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """初始化日志输出格式与级别。"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # httpx 默认在 INFO 级别打印完整请求地址，其中含筛选条件（邮箱），降到 WARNING。
    logging.getLogger("httpx").setLevel(logging.WARNING)
