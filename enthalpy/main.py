"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from enthalpy.config import Settings, settings
from enthalpy.landing.router import router as pilot_router
from enthalpy.notifications.email import build_email_sender
from enthalpy.pilot.service import PilotAccessService

VERSION = "0.1.0"

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.dev.ConsoleRenderer() if settings.environment == "development"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        getattr(logging, settings.log_level.upper(), logging.INFO)
    ),
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the email transport once per process and close it on shutdown."""
    app_settings: Settings = app.state.settings
    sender = build_email_sender(app_settings)
    app.state.pilot_service = PilotAccessService(app_settings, sender)

    logger.info(
        "app_starting",
        environment=app_settings.environment,
        email_transport=app_settings.email_transport,
        missing_email_settings=app_settings.missing_email_settings(),
    )
    yield
    logger.info("app_shutting_down")

    if sender is not None:
        await sender.close()


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Create the FastAPI application for the given settings."""
    app = FastAPI(
        title="Enthalpy Pilot Access API",
        description="Pilot access requests for Enthalpy cold-chain monitoring",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    # Preflight for the landing page when it is served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_allowed_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.include_router(pilot_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Enthalpy Pilot Access API",
            "version": VERSION,
            "status": "running",
        }

    @app.get("/health")
    async def health():
        """Liveness plus whether email delivery is configured."""
        return {
            "status": "ok",
            "email_configured": not app_settings.missing_email_settings(),
        }

    return app


app = create_app()
