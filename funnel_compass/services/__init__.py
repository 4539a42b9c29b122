"""
Funnel Compass Services Module

Analytics core and orchestration for the Funnel Compass service. Every
analytics service is a set of stateless, pure functions over already-fetched
snapshots; only the runner and the providers are async.

Services:
- significance: noise vs signal for percentage changes
- seasonality: calendar windows that relax thresholds
- thresholds: effective variance per metric (history, benchmark, season)
- economic_impact: dollar impact of stage and drop-off changes
- comparator: current / previous / trailing comparison periods
- catalog: built-in funnel schemas and vertical benchmarks
- advisors: pluggable finding generators and the advisor registry
- funnel_walker: single-entity funnel diagnostic
- correlator: cross-platform signals and budget recommendations
- portfolio_actions: globally ranked, risk-scored action list
- summary: plain-text executive summary and diagnostic report
- providers: snapshot provider protocol and in-memory provider
- runner: best-effort concurrent multi-platform diagnostic

All services are designed to be consumed by the API layer (funnel_compass/api/).
"""

# =============================================================================
# Errors
# =============================================================================

from funnel_compass.services.errors import (
    FunnelCompassError,
    MalformedSnapshotError,
    SnapshotNotFoundError,
    UnsupportedFunnelError,
)

# =============================================================================
# Significance / Seasonality / Threshold Exports
# =============================================================================

from funnel_compass.services.significance import (
    percent_change,
    is_significant_change,
    minimum_detectable_change,
    z_score,
)

from funnel_compass.services.seasonality import (
    SeasonalEvent,
    SEASONAL_EVENTS,
    get_active_seasonal_event,
    get_seasonal_cpm_multiplier,
    get_seasonal_cpa_multiplier,
)

from funnel_compass.services.thresholds import (
    account_variance,
    resolve_variance,
    get_effective_variance,
)

# =============================================================================
# Economic Impact Exports
# =============================================================================

from funnel_compass.services.economic_impact import (
    compute_stage_economic_impact,
    compute_dropoff_economic_impact,
    build_elasticity_ranking,
)

# =============================================================================
# Funnel Diagnostic Exports
# =============================================================================

from funnel_compass.services.comparator import (
    build_comparison_periods,
    build_trailing_periods,
)

from funnel_compass.services.catalog import (
    resolve_funnel,
    resolve_benchmarks,
    build_meta_leadgen_funnel,
)

from funnel_compass.services.advisors import (
    FindingAdvisor,
    resolve_advisors,
    build_summary_findings,
)

from funnel_compass.services.funnel_walker import (
    analyze_funnel,
    classify_severity,
    find_bottleneck,
)

# =============================================================================
# Portfolio Exports
# =============================================================================

from funnel_compass.services.correlator import correlate

from funnel_compass.services.portfolio_actions import generate_portfolio_actions

from funnel_compass.services.summary import (
    generate_executive_summary,
    format_diagnostic,
)

from funnel_compass.services.providers import (
    SnapshotProvider,
    InMemorySnapshotProvider,
)

from funnel_compass.services.runner import run_multi_platform_diagnostic


__all__ = [
    # Errors
    "FunnelCompassError",
    "MalformedSnapshotError",
    "SnapshotNotFoundError",
    "UnsupportedFunnelError",
    # Significance
    "percent_change",
    "is_significant_change",
    "minimum_detectable_change",
    "z_score",
    # Seasonality
    "SeasonalEvent",
    "SEASONAL_EVENTS",
    "get_active_seasonal_event",
    "get_seasonal_cpm_multiplier",
    "get_seasonal_cpa_multiplier",
    # Thresholds
    "account_variance",
    "resolve_variance",
    "get_effective_variance",
    # Economic impact
    "compute_stage_economic_impact",
    "compute_dropoff_economic_impact",
    "build_elasticity_ranking",
    # Funnel diagnostic
    "build_comparison_periods",
    "build_trailing_periods",
    "resolve_funnel",
    "resolve_benchmarks",
    "build_meta_leadgen_funnel",
    "FindingAdvisor",
    "resolve_advisors",
    "build_summary_findings",
    "analyze_funnel",
    "classify_severity",
    "find_bottleneck",
    # Portfolio
    "correlate",
    "generate_portfolio_actions",
    "generate_executive_summary",
    "format_diagnostic",
    "SnapshotProvider",
    "InMemorySnapshotProvider",
    "run_multi_platform_diagnostic",
]
