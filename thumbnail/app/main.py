import sys
import time
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, settings
from .dependencies import ServiceContainer, build_container
from .routes.events import router as events_router
from .utils.logging import logger


def create_app(container_factory: Callable[[Settings], ServiceContainer] = build_container) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.set_level(settings.LOG_LEVEL)
        logger.log_step("starting_thumbnail_agent", {
            "host": settings.APP_HOST,
            "port": settings.APP_PORT,
            "debug": settings.DEBUG,
            "python_version": sys.version,
            "storage_backend": settings.STORAGE_BACKEND
        })

        app.state.container = container_factory(settings)

        yield

        logger.log_step("application_shutdown")
        app.state.container.close()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description="Generates JPEG thumbnails for uploaded question paper PDFs.",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        logger.log_step("request_completed", {
            "method": request.method,
            "url": str(request.url),
            "status_code": response.status_code,
            "process_time": process_time
        })

        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.log_error("unhandled_exception", {
            "method": request.method,
            "url": str(request.url),
            "error": str(exc)
        })

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    app.include_router(events_router)

    @app.get("/")
    async def root():
        return {
            "message": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "endpoints": {
                "health": "/api/v1/health",
                "storage_events": "/api/v1/events/storage",
                "pubsub_events": "/api/v1/events/pubsub",
                "docs": "/docs"
            }
        }

    return app


app = create_app()
