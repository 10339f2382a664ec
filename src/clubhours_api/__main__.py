"""服务启动入口：`python -m clubhours_api` 或 `clubhours-api`。"""

import uvicorn

from clubhours_api.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "clubhours_api.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
