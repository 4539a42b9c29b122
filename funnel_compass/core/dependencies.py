"""
FastAPI dependency injection module for the Funnel Compass service.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- SettingsDep: Type alias for injecting Settings into endpoints
- get_snapshot_provider: Snapshot provider used by portfolio runs
- SnapshotProviderDep: Type alias for injecting the provider

The default provider is an empty InMemorySnapshotProvider; the portfolio
endpoint fills a fresh one from the request body. Deployments that fetch from
live ad platforms override `get_snapshot_provider`.

Usage Examples:
    @router.get("/diagnostics/seasonality")
    async def seasonality(settings: SettingsDep):
        ...

    # In tests
    app.dependency_overrides[get_settings_dependency] = lambda: test_settings
"""

from typing import Annotated

from fastapi import Depends

from funnel_compass.core.config import Settings, get_settings
from funnel_compass.services.providers import InMemorySnapshotProvider


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    This is a thin wrapper around get_settings() so that tests can use
    FastAPI's dependency override mechanism:

        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
    """
    return get_settings()


# =============================================================================
# Snapshot Provider Dependency
# =============================================================================

def get_snapshot_provider() -> InMemorySnapshotProvider:
    """
    Return a snapshot provider for one request.

    A new InMemorySnapshotProvider per request keeps inline snapshots from
    leaking between requests.
    """
    return InMemorySnapshotProvider()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

# Usage: async def endpoint(provider: SnapshotProviderDep)
SnapshotProviderDep = Annotated[InMemorySnapshotProvider, Depends(get_snapshot_provider)]
