"""FastAPI application for the booking engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from booking_engine import __version__
from booking_engine.api.middleware import RequestLoggingMiddleware
from booking_engine.api.routes import appointments, health, services
from booking_engine.config import get_settings
from booking_engine.scheduling.availability import WeeklyWorkingHours
from booking_engine.scheduling.errors import SchedulingError
from booking_engine.scheduling.events import EventBus
from booking_engine.scheduling.locks import ProviderLockRegistry
from booking_engine.scheduling.store import InMemorySchedulingStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting booking engine API")

    settings = get_settings()
    if settings.uses_database:
        from booking_engine.core.database import init_db

        await init_db()

    logger.info("Booking engine API started successfully")

    yield

    logger.info("Shutting down booking engine API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Booking Engine API",
        description="Appointment scheduling with recurrence, availability and conflict checks",
        version=__version__,
        lifespan=lifespan,
    )

    # Shared engine state; the lock registry must be process-wide
    app.state.memory_store = InMemorySchedulingStore()
    app.state.locks = ProviderLockRegistry(timeout_seconds=settings.lock_timeout_seconds)
    app.state.events = EventBus(log_dir=settings.event_log_dir)
    app.state.working_hours = WeeklyWorkingHours.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, tags=["health"])
    app.include_router(appointments.router, prefix="/api", tags=["appointments"])
    app.include_router(services.router, prefix="/api", tags=["services"])

    # Exception handlers
    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError):
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.debug_mode else None,
            },
        )

    return app
