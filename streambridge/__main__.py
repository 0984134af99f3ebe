from __future__ import annotations

import logging

import uvicorn

from streambridge.backend.app import create_app, load_settings
from streambridge.backend.log import configure_logging

logger = logging.getLogger("streambridge")


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("Starting the unified streaming server...")

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
