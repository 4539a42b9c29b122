"""
Core infrastructure package for the Funnel Compass service.

Provides:
- Configuration management via pydantic-settings
- FastAPI dependency injection utilities

Re-exports key components so callers can write:

    from funnel_compass.core import get_settings, SettingsDep

Components Re-exported:
    Settings: Pydantic settings class with all configuration parameters
    get_settings: Function returning the cached Settings singleton
    get_settings_dependency: FastAPI dependency returning Settings
    get_snapshot_provider: FastAPI dependency returning a snapshot provider
    SettingsDep: Type alias for Settings dependency injection
    SnapshotProviderDep: Type alias for provider dependency injection
"""

# =============================================================================
# Re-exports from funnel_compass.core.config
# =============================================================================
from funnel_compass.core.config import Settings, get_settings

# =============================================================================
# Re-exports from funnel_compass.core.dependencies
# =============================================================================
from funnel_compass.core.dependencies import (
    get_settings_dependency,
    get_snapshot_provider,
    SettingsDep,
    SnapshotProviderDep,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'get_snapshot_provider',
    'SettingsDep',
    'SnapshotProviderDep',
]
