"""
FastAPI router module for funnel and portfolio diagnostics.

This module exposes the analytics core over HTTP. Snapshots are supplied
inline in the request body; the service does not fetch from ad platforms
itself.

Key Endpoints:
- POST /diagnostics/funnel - Diagnose one entity's funnel (current vs previous)
- POST /diagnostics/funnel/report - Same diagnostic rendered as plain text
- POST /diagnostics/portfolio - Diagnose several platforms and rank actions
- GET /diagnostics/funnels/{platform}/{vertical} - Built-in funnel schema
- GET /diagnostics/seasonality - Seasonal event active in a date range

Funnel Resolution:
- An explicit `funnel` in the request wins
- Otherwise the catalog funnel for (platform, vertical) is used
- Benchmarks default to the catalog table for the funnel's vertical

Error Mapping:
- UnsupportedFunnelError, MalformedSnapshotError -> 422
- Request validation errors -> 422 (FastAPI)
- Portfolio runs never fail because of one platform; failed platforms are
  reported inside the MultiPlatformResult

Dependencies:
- funnel_compass/core/dependencies.py: SettingsDep, SnapshotProviderDep
- funnel_compass/services/funnel_walker.py: analyze_funnel
- funnel_compass/services/runner.py: run_multi_platform_diagnostic
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse

from funnel_compass.core.config import Settings
from funnel_compass.core.dependencies import SettingsDep, SnapshotProviderDep
from funnel_compass.models import (
    ComparisonPeriods,
    DiagnosticResult,
    FunnelDiagnosticRequest,
    FunnelSchema,
    MultiPlatformResult,
    PlatformRunConfig,
    PlatformType,
    PortfolioDiagnosticRequest,
    PortfolioRunConfig,
    TimeRange,
    VerticalType,
)
from funnel_compass.services.advisors import resolve_advisors
from funnel_compass.services.catalog import resolve_benchmarks, resolve_funnel
from funnel_compass.services.errors import FunnelCompassError, UnsupportedFunnelError
from funnel_compass.services.funnel_walker import analyze_funnel
from funnel_compass.services.runner import run_multi_platform_diagnostic
from funnel_compass.services.seasonality import SeasonalEvent, get_active_seasonal_event
from funnel_compass.services.summary import format_diagnostic


# =============================================================================
# Module Configuration
# =============================================================================

# Logger for this module
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================


def _run_funnel_diagnostic(request: FunnelDiagnosticRequest, settings: Settings) -> DiagnosticResult:
    """
    Resolve funnel, benchmarks and advisors for a request and run the walker.

    Raises:
        HTTPException: 422 when the funnel cannot be resolved or the
            snapshots cannot be compared under it
    """
    try:
        funnel = request.funnel or resolve_funnel(request.platform, request.vertical)

        benchmarks = request.benchmarks
        if benchmarks is None:
            try:
                benchmarks = resolve_benchmarks(funnel.vertical)
            except UnsupportedFunnelError:
                logger.info(f"No benchmarks for vertical {funnel.vertical.value}")

        average_order_value = request.averageOrderValue or settings.default_average_order_value

        return analyze_funnel(
            funnel,
            request.current,
            request.previous,
            benchmarks=benchmarks,
            advisors=resolve_advisors(request.platform, funnel.vertical),
            context=request.context,
            account_history=request.accountHistory,
            average_order_value=average_order_value,
            platform=request.platform,
            default_variance=settings.default_variance_percent,
            min_history_periods=settings.min_history_periods,
            dropoff_warning_percent=settings.dropoff_warning_percent,
            dropoff_critical_percent=settings.dropoff_critical_percent,
        )
    except FunnelCompassError as e:
        logger.warning(f"Funnel diagnostic rejected for {request.current.entityId}: {e}")
        raise HTTPException(status_code=422, detail=str(e))


def _snapshot_periods(current_start: date, current_end: date, previous_start: date, previous_end: date) -> ComparisonPeriods:
    return ComparisonPeriods(
        current=TimeRange(since=current_start, until=current_end),
        previous=TimeRange(since=previous_start, until=previous_end),
    )


# =============================================================================
# Funnel Endpoints
# =============================================================================


@router.post("/funnel", response_model=DiagnosticResult)
async def diagnose_funnel(request: FunnelDiagnosticRequest, settings: SettingsDep) -> DiagnosticResult:
    """
    Diagnose one entity's funnel, current period vs previous period.

    Walks the funnel top to bottom, classifies every stage against its
    effective variance, computes drop-offs and economic impact, picks the
    bottleneck and runs the advisors registered for the platform/vertical.

    Args:
        request: Snapshots plus either an explicit funnel or a platform
        settings: Injected application settings

    Returns:
        DiagnosticResult for the entity

    Raises:
        HTTPException: 422 if the funnel is unsupported or the snapshots are
            malformed

    Example Request:
        POST /diagnostics/funnel
        {
            "platform": "meta",
            "vertical": "commerce",
            "current": {"entityId": "act_1", "periodStart": "2024-01-08", ...},
            "previous": {"entityId": "act_1", "periodStart": "2024-01-01", ...}
        }

    Example Response:
        {
            "entityId": "act_1",
            "primaryKPI": {"name": "purchase", "deltaPercent": 33.3, "severity": "critical", ...},
            "bottleneck": {"stageName": "purchase", ...},
            "findings": [...]
        }
    """
    logger.info(
        f"Funnel diagnostic for {request.current.entityId} "
        f"({request.platform.value if request.platform else 'custom funnel'}, {request.vertical.value})"
    )
    return _run_funnel_diagnostic(request, settings)


@router.post("/funnel/report", response_class=PlainTextResponse)
async def diagnose_funnel_report(request: FunnelDiagnosticRequest, settings: SettingsDep) -> str:
    """
    Run the funnel diagnostic and return the plain-text report.

    Accepts the same body as POST /diagnostics/funnel.
    """
    result = _run_funnel_diagnostic(request, settings)
    return format_diagnostic(result)


@router.get("/funnels/{platform}/{vertical}", response_model=FunnelSchema)
async def get_funnel(platform: PlatformType, vertical: VerticalType) -> FunnelSchema:
    """
    Return the built-in funnel schema for a platform/vertical combination.

    Raises:
        HTTPException: 404 if the catalog has no such funnel
    """
    try:
        return resolve_funnel(platform, vertical)
    except UnsupportedFunnelError as e:
        logger.warning(f"Funnel lookup failed: {e}")
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# Portfolio Endpoint
# =============================================================================


@router.post("/portfolio", response_model=MultiPlatformResult)
async def diagnose_portfolio(
    request: PortfolioDiagnosticRequest,
    settings: SettingsDep,
    provider: SnapshotProviderDep,
) -> MultiPlatformResult:
    """
    Diagnose several platforms concurrently and build the portfolio view.

    Each platform's snapshots are loaded into the injected snapshot provider
    and the comparison periods are taken from the snapshots themselves, so
    platforms may report slightly different windows. A platform whose
    diagnostic fails is reported with status "error"; the others proceed.

    Args:
        request: Vertical plus one current/previous snapshot pair per platform
        settings: Injected application settings
        provider: Injected snapshot provider (in-memory by default)

    Returns:
        MultiPlatformResult with per-platform results, cross-platform
        findings, budget recommendations, ranked actions and the executive
        summary

    Example Response:
        {
            "platforms": [{"platform": "meta", "status": "success", ...}],
            "budgetRecommendations": [{"from": "meta", "to": "google", ...}],
            "portfolioActions": [{"priority": 1, ...}],
            "executiveSummary": "## Multi-Platform Diagnostic Summary ..."
        }
    """
    platform_configs = []
    for item in request.platforms:
        provider.add(item.platform, item.current)
        provider.add(item.platform, item.previous)
        platform_configs.append(PlatformRunConfig(
            platform=item.platform,
            entityId=item.current.entityId,
            entityLevel=item.current.entityLevel,
            averageOrderValue=item.averageOrderValue,
            funnel=item.funnel,
            accountHistory=item.accountHistory,
            periods=_snapshot_periods(
                item.current.periodStart,
                item.current.periodEnd,
                item.previous.periodStart,
                item.previous.periodEnd,
            ),
        ))

    config = PortfolioRunConfig(
        vertical=request.vertical,
        platforms=platform_configs,
        referenceDate=max(item.current.periodEnd for item in request.platforms),
    )

    logger.info(f"Portfolio diagnostic requested for {len(platform_configs)} platforms")
    return await run_multi_platform_diagnostic(config, provider, settings)


# =============================================================================
# Seasonality Endpoint
# =============================================================================


@router.get("/seasonality")
async def get_seasonality(
    since: date = Query(..., description="First day of the period (YYYY-MM-DD)"),
    until: date = Query(..., description="Last day of the period (YYYY-MM-DD)"),
) -> Dict[str, Any]:
    """
    Return the seasonal event overlapping a date range, if any.

    Returns:
        Dict with the event name (null outside any event) and the CPM/CPA
        threshold multipliers that apply to the range

    Raises:
        HTTPException: 422 if since is after until

    Example Response:
        {"event": "Black Friday / Cyber Monday", "cpmMultiplier": 1.8, "cpaMultiplier": 1.4}
    """
    if since > until:
        logger.warning(f"Invalid seasonality range: {since} > {until}")
        raise HTTPException(status_code=422, detail="since must not be after until")

    event: Optional[SeasonalEvent] = get_active_seasonal_event(since, until)
    if event is None:
        return {"event": None, "cpmMultiplier": 1.0, "cpaMultiplier": 1.0}

    return {
        "event": event.name,
        "cpmMultiplier": event.cpm_threshold_multiplier,
        "cpaMultiplier": event.cpa_threshold_multiplier,
    }
