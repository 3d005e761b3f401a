"""Vlada billing backend - Application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vlada import __version__
from vlada.api.v1.router import api_router
from vlada.core.config import get_settings
from vlada.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create the FastAPI application.

    Firebase is not initialized here; the first request that needs it
    triggers initialization through the provider.
    """
    settings = get_settings()
    if not settings.is_testing():
        setup_logging()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        debug=settings.debug,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix="/api")

    logger.info("%s %s created", settings.app_name, __version__)
    return app


def main() -> None:
    """Run the development server."""
    import uvicorn  # noqa: PLC0415

    settings = get_settings()
    uvicorn.run(
        "vlada.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
