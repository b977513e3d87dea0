"""
FastAPI Main Application
Entry point for the Klick Market moderation API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from .dependencies import shutdown_workflow
from .errors import setup_error_handlers
from .middleware import RequestLoggingMiddleware
from .routers import admin_router, health_router, products_router

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    On shutdown, waits for in-flight background validations and closes the
    providers' HTTP client.
    """
    settings = get_settings()
    logger.info(
        f"Starting {settings.app_name} "
        f"(validation_mode={settings.validation_mode}, repository={settings.repository_backend})"
    )

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await shutdown_workflow()


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.description,
        version=settings.version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    setup_error_handlers(app)

    app.include_router(health_router)
    app.include_router(products_router)
    app.include_router(admin_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "klick.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
