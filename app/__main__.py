"""Run the proxy with uvicorn: ``python -m app``."""

import logging

import uvicorn

from app.config import get_settings
from app.logging import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info(f"Starting Vision Proxy on {settings.gateway_host}:{settings.gateway_port}")
    uvicorn.run(
        "app.main:app",
        host=settings.gateway_host,
        port=settings.gateway_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
