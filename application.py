"""
Application factory for the Driver Location Service.

``create_app`` wires settings, logging, the document store gateway, the
middleware stack and the routers into a FastAPI application. The store
connects during startup and its pool is released on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import ANY_ORIGIN, Settings, get_settings, validate_startup
from drivers.routes import router as drivers_router
from drivers.service import DriverLocationService
from drivers.store import DriverLocationStore
from errors.exceptions import AppException
from errors.handlers import register_exception_handlers
from health.routes import router as health_router
from health.service import HealthCheckService
from middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from telemetry.service import initialize_telemetry

logger = logging.getLogger(__name__)

APP_TITLE = "Driver Location Service"
APP_VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DriverLocationStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment when omitted
        store: Store gateway to use; built from settings when omitted

    Returns:
        The configured application
    """
    settings = settings or get_settings()
    telemetry_service = initialize_telemetry(settings)

    store = store or DriverLocationStore(settings)
    driver_service = DriverLocationService(store=store, telemetry=telemetry_service)
    health_check_service = HealthCheckService(store=store, check_timeout=5.0)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Driver Location Service...")
        validate_startup(settings)
        try:
            await store.connect()
        except AppException as e:
            # Keep serving; operations retry the connection and fail with 500 meanwhile
            logger.error(f"Elasticsearch unavailable at startup: {e.message}")
        logger.info(f"Location Update Handler is running at Port:{settings.port}")

        yield

        logger.info("Shutting down Driver Location Service...")
        await store.close()

    app = FastAPI(title=APP_TITLE, version=APP_VERSION, lifespan=lifespan)

    app.state.settings = settings
    app.state.telemetry_service = telemetry_service
    app.state.store = store
    app.state.driver_service = driver_service
    app.state.health_check_service = health_check_service

    register_exception_handlers(app)

    # Credentials are only sent to explicitly listed origins
    allow_any_origin = settings.cors_origins == [ANY_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not allow_any_origin,
        allow_methods=["GET", "PUT", "OPTIONS"],
        allow_headers=[
            "Accept",
            "Accept-Language",
            "Content-Language",
            "Content-Type",
            REQUEST_ID_HEADER,
        ],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=600,
    )

    # Added after CORS so it wraps every request, preflights included
    app.add_middleware(RequestIDMiddleware)

    app.include_router(drivers_router)
    app.include_router(health_router)

    return app
