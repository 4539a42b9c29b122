"""
FastAPI application entry point for the Funnel Compass API.

This module configures logging, registers the API routers and starts the
ASGI server when executed directly.

The analytics core is stateless: there is no database or connection pool to
open at startup, so the lifespan hook only logs and validates settings.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from funnel_compass import __version__
from funnel_compass.api import api_router
from funnel_compass.core.config import get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Log startup message with the effective defaults

    On shutdown:
        - Log shutdown message
    """
    logger.info(
        f"{settings.app_name} starting (default vertical {settings.default_vertical.value}, "
        f"{settings.default_period_days}-day periods)"
    )

    yield

    logger.info(f"{settings.app_name} shutting down")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description=(
        "Funnel diagnostics for paid advertising. "
        "Provides endpoints for single-funnel diagnostics, multi-platform "
        "portfolio diagnostics, the built-in funnel catalog and seasonality."
    ),
    lifespan=lifespan,
)

# Register API routers
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "funnel_compass.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
