"""
Multi-Platform Runner - best-effort concurrent fan-out.

Runs the single-platform diagnostic for every enabled platform in a portfolio
concurrently, then correlates the results and ranks portfolio actions.

Per platform (one task each):
    resolve funnel + benchmarks + advisors -> fetch current/previous
    snapshots -> Funnel Walker -> PlatformResult

The tasks are joined with asyncio.gather(return_exceptions=True): a platform
that fails (fetch error, unsupported funnel, malformed snapshot) becomes a
PlatformResult with status=error and never cancels or voids the others. The
run as a whole succeeds when at least one platform succeeded.

Usage:
    provider = InMemorySnapshotProvider({...})
    result = await run_multi_platform_diagnostic(config, provider)
    print(result.executiveSummary)
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import List, Optional

from funnel_compass.core.config import Settings, get_settings
from funnel_compass.models import (
    ComparisonPeriods,
    DiagnosticResult,
    MultiPlatformResult,
    PlatformResult,
    PlatformRunConfig,
    PlatformStatus,
    PortfolioRunConfig,
    VerticalType,
)
from funnel_compass.services.advisors import resolve_advisors
from funnel_compass.services.catalog import resolve_benchmarks, resolve_funnel
from funnel_compass.services.comparator import build_comparison_periods
from funnel_compass.services.correlator import correlate
from funnel_compass.services.errors import UnsupportedFunnelError
from funnel_compass.services.funnel_walker import analyze_funnel
from funnel_compass.services.portfolio_actions import generate_portfolio_actions
from funnel_compass.services.providers import SnapshotProvider
from funnel_compass.services.summary import generate_executive_summary

logger = logging.getLogger(__name__)


def default_reference_date() -> date:
    """Yesterday: the most recent fully reported day."""
    return date.today() - timedelta(days=1)


async def diagnose_platform(
    platform_config: PlatformRunConfig,
    vertical: VerticalType,
    periods: ComparisonPeriods,
    provider: SnapshotProvider,
    settings: Settings,
) -> DiagnosticResult:
    """
    Fetch and diagnose one platform.

    Raises whatever the catalog, provider or walker raises; the caller turns
    it into an error PlatformResult.
    """
    platform = platform_config.platform
    funnel = platform_config.funnel or resolve_funnel(platform, vertical)

    benchmarks = platform_config.benchmarks
    if benchmarks is None:
        try:
            benchmarks = resolve_benchmarks(funnel.vertical)
        except UnsupportedFunnelError:
            logger.warning(f"No benchmarks for {funnel.vertical.value}; using history and spend only")

    current, previous = await provider.fetch_comparison_snapshots(
        platform,
        platform_config.entityId,
        platform_config.entityLevel,
        periods.current,
        periods.previous,
        funnel,
    )

    average_order_value = platform_config.averageOrderValue or settings.default_average_order_value

    return analyze_funnel(
        funnel,
        current,
        previous,
        periods=periods,
        benchmarks=benchmarks,
        advisors=resolve_advisors(platform, funnel.vertical),
        account_history=platform_config.accountHistory,
        average_order_value=average_order_value,
        platform=platform,
        default_variance=settings.default_variance_percent,
        min_history_periods=settings.min_history_periods,
        dropoff_warning_percent=settings.dropoff_warning_percent,
        dropoff_critical_percent=settings.dropoff_critical_percent,
    )


async def run_multi_platform_diagnostic(
    config: PortfolioRunConfig,
    provider: SnapshotProvider,
    settings: Optional[Settings] = None,
) -> MultiPlatformResult:
    """
    Diagnose every enabled platform concurrently and build the portfolio view.

    Args:
        config: Platforms, vertical and period settings for the run
        provider: Snapshot source shared by all platforms
        settings: Application settings (defaults to get_settings())

    Returns:
        MultiPlatformResult with one PlatformResult per enabled platform, in
        config order, plus correlator output, ranked actions and the
        executive summary.
    """
    settings = settings or get_settings()
    period_days = config.periodDays or settings.default_period_days
    reference_date = config.referenceDate or default_reference_date()
    shared_periods = build_comparison_periods(reference_date, period_days)

    enabled = [p for p in config.platforms if p.enabled]
    logger.info(
        f"Starting portfolio diagnostic for {len(enabled)} platforms "
        f"({config.vertical.value}, {shared_periods.current.since} to {shared_periods.current.until})"
    )

    tasks = [
        diagnose_platform(
            platform_config,
            config.vertical,
            platform_config.periods or shared_periods,
            provider,
            settings,
        )
        for platform_config in enabled
    ]
    # return_exceptions=True: one platform's failure never cancels the others
    outcomes = await asyncio.gather(*tasks, return_exceptions=True)

    platform_results: List[PlatformResult] = []
    for platform_config, outcome in zip(enabled, outcomes):
        if isinstance(outcome, Exception):
            logger.error(f"Platform {platform_config.platform.value} failed: {outcome}")
            platform_results.append(PlatformResult(
                platform=platform_config.platform,
                status=PlatformStatus.ERROR,
                error=str(outcome) or type(outcome).__name__,
            ))
        elif isinstance(outcome, BaseException):
            # Cancellation and interpreter exits are not platform failures
            raise outcome
        else:
            platform_results.append(PlatformResult(
                platform=platform_config.platform,
                status=PlatformStatus.SUCCESS,
                result=outcome,
            ))

    correlation = correlate(platform_results)
    actions = generate_portfolio_actions(
        platform_results,
        correlation.findings,
        correlation.budgetRecommendations,
        noise_floor=settings.elasticity_noise_floor,
    )
    summary = generate_executive_summary(
        platform_results,
        correlation.findings,
        correlation.budgetRecommendations,
        actions,
    )

    result = MultiPlatformResult(
        platforms=platform_results,
        crossPlatformFindings=correlation.findings,
        budgetRecommendations=correlation.budgetRecommendations,
        portfolioActions=actions,
        executiveSummary=summary,
        failedPlatformCount=correlation.failedPlatformCount,
    )

    logger.info(
        f"Portfolio diagnostic finished: {len(platform_results) - result.failedPlatformCount} succeeded, "
        f"{result.failedPlatformCount} failed, {len(actions)} actions"
    )
    return result
