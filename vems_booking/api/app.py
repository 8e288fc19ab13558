"""
FastAPI application factory and configuration.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import configure_logging, get_settings
from ..utils.event_log import set_log_path
from .container import ServiceContainer
from .errors import register_error_handlers
from .handlers import BookingHandler, HealthHandler, OtpHandler, WorklistHandler
from .middleware import LoggingMiddleware, SecurityHeaders

logger = logging.getLogger(__name__)


async def _housekeeping(container: ServiceContainer, interval: int) -> None:
    """Periodically expire overdue challenges and purge old ones."""
    while True:
        await asyncio.sleep(interval)
        try:
            expired, deleted = await container.otp.expire_stale()
        except Exception:
            logger.exception("Challenge housekeeping failed")
            continue
        if expired or deleted:
            logger.info("Housekeeping expired %d and purged %d challenges", expired, deleted)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    container = container or ServiceContainer()
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        set_log_path(settings.event_log_path)
        await container.store.initialize()

        housekeeping = None
        if settings.housekeeping_interval_seconds > 0:
            housekeeping = asyncio.create_task(
                _housekeeping(container, settings.housekeeping_interval_seconds)
            )
        logger.info("%s %s started", settings.app_name, settings.app_version)
        try:
            yield
        finally:
            if housekeeping is not None:
                housekeeping.cancel()
                try:
                    await housekeeping
                except asyncio.CancelledError:
                    pass
            await container.otp.drain()

    app = FastAPI(
        title=settings.app_name,
        description="Booking lifecycle and OTP-gated fulfilment for diagnostic services",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.container = container

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.add_middleware(SecurityHeaders)
    app.add_middleware(LoggingMiddleware)

    register_error_handlers(app)

    # Register routes
    app.include_router(HealthHandler(container).router, prefix="/health", tags=["health"])
    app.include_router(BookingHandler(container).router, prefix="/bookings", tags=["bookings"])
    app.include_router(OtpHandler(container).router, prefix="/otp", tags=["otp"])
    app.include_router(WorklistHandler(container).router, prefix="/practitioner", tags=["worklist"])

    return app
