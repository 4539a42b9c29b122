"""
Settings and environment management module for the Funnel Compass service.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults for development
- Singleton pattern via @lru_cache for efficient access

Analytics Defaults:
- default_period_days: 7 (week-over-week comparison)
- default_variance_percent: None (metrics with no benchmark or history use the
  spend heuristic; set a percentage to use a fixed variance instead)
- min_history_periods: 4 (trailing periods required for account-specific variance)
- dropoff_warning_percent / dropoff_critical_percent: -20 / -40
- elasticity_noise_floor: 10.0 (dollars; smaller top losses produce no action)

The analytics services accept these values as keyword arguments with the same
defaults, so they stay callable without settings. The runner and the API read
them from here.

Usage:
    from funnel_compass.core.config import get_settings

    settings = get_settings()
    period_days = settings.default_period_days
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from funnel_compass.models.enums import VerticalType


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name used in the OpenAPI document.
        log_level: Root logging level for the application entry point.
        default_vertical: Vertical assumed when a request does not name one.
        default_period_days: Length of each comparison period in days.
        default_average_order_value: Fallback AOV for economic impact. When
            unset, AOV is inferred from the ROAS metric, and stages get no
            economic impact if that is unavailable too.
        default_variance_percent: Variance used when neither account history
            nor a vertical benchmark covers a metric. None keeps the
            spend-based significance heuristic for those metrics.
        min_history_periods: Trailing periods required before account history
            overrides the vertical benchmark.
        dropoff_warning_percent: Drop-off delta below which a warning is raised.
        dropoff_critical_percent: Drop-off delta below which it is critical.
        elasticity_noise_floor: Minimum top-stage dollar loss for an action.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    app_name: str = 'Funnel Compass API'
    log_level: str = 'INFO'

    # =========================================================================
    # Diagnostic Defaults
    # =========================================================================

    default_vertical: VerticalType = VerticalType.COMMERCE

    # 7 = week-over-week
    default_period_days: int = 7

    default_average_order_value: Optional[float] = None

    # =========================================================================
    # Significance / Threshold Defaults
    # =========================================================================

    default_variance_percent: Optional[float] = None

    # Fewer trailing periods than this and the benchmark default wins
    min_history_periods: int = 4

    dropoff_warning_percent: float = -20.0
    dropoff_critical_percent: float = -40.0

    # =========================================================================
    # Portfolio Action Defaults
    # =========================================================================

    elasticity_noise_floor: float = 10.0


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The application settings instance with all configuration values.

    Raises:
        pydantic.ValidationError: If an environment variable has an invalid value.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
