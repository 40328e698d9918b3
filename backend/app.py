"""
Fan Control Backend Application

FastAPI application hosting the control loop on a background thread and
exposing inspection endpoints.
"""

import os
import sys
from contextlib import asynccontextmanager

import log_config  # noqa: F401
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from loguru import logger

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import api
from api import router as api_router

from core.fancontrol.control_service import build_service
from core.fancontrol.settings import load_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan manager for startup/shutdown."""
    # Startup
    logger.info("Fan control starting")

    settings = load_settings(os.environ.get("FANCONTROL_CONFIG"))
    service = build_service(settings)
    service.start()
    api.control_service = service
    logger.info(f"Controlling {len(service.actuators)} actuator(s)")

    yield

    # Shutdown
    logger.info("Fan control shutting down")
    api.control_service = None
    service.stop(timeout=settings.thermostat.timeout * 2)


# Create FastAPI application
app = FastAPI(
    title="Fan Control API",
    description="Furnace blower overrun and ceiling fan boost driven by thermostat state",
    version="0.1.0",
    lifespan=lifespan,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all unhandled exceptions gracefully."""
    logger.opt(exception=exc).error(f"Unhandled exception on {request.url.path}: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "message": "Internal server error",
        },
    )


# Include API router
app.include_router(api_router)
