import logging

import uvicorn
from fastapi import FastAPI

from env_vars import settings
from infrastructure.conversion.subprocess_launcher import SubprocessLauncher
from infrastructure.storage.s3_store import S3Store
from interfaces.http.app import create_app

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_app() -> FastAPI:
    # 1. Infrastructure
    store = S3Store.from_settings(settings)
    launcher = SubprocessLauncher()

    # 2. HTTP surface
    app = create_app(settings, store, launcher)
    logger.info(f"Serving bucket {settings.s3_bucket} at {settings.s3_endpoint}")
    return app


if __name__ == "__main__":
    try:
        uvicorn.run(build_app(), host=settings.http_host, port=settings.http_port, log_level=settings.log_level.lower())
    except KeyboardInterrupt:
        logger.info("Server stopped.")
