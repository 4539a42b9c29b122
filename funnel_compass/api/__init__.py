"""
Funnel Compass API package initialization.

This package contains the FastAPI router modules for the Funnel Compass service:
- diagnostics: single-funnel and portfolio diagnostics, funnel catalog and
  seasonality lookups
"""

from fastapi import APIRouter

# Import router modules
from funnel_compass.api.diagnostics import router as diagnostics_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(diagnostics_router, prefix="/diagnostics", tags=["diagnostics"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "diagnostics_router",
]
