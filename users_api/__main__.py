"""Run the API with uvicorn: ``python -m users_api``."""

import logging

import uvicorn

from users_api.core.config import settings
from users_api.core.logging import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(settings.log)
    logger.info(
        "server.starting",
        extra={"host": settings.app.host, "port": settings.app.port},
    )
    uvicorn.run(
        "users_api.main:app",
        host=settings.app.host,
        port=settings.app.port,
        log_level=settings.log.level.lower(),
    )


if __name__ == "__main__":
    main()
