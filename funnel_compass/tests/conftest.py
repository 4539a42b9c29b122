"""
Pytest Configuration and Shared Fixtures for Funnel Compass Tests.

This module provides fixtures and configuration for all tests, supporting:
- Async test execution with pytest-asyncio (runner and provider tests)
- Snapshot builders for current/previous comparison pairs
- A compact commerce funnel and matching benchmark table
- Factories for pre-built DiagnosticResult / PlatformResult objects used by
  the correlator and portfolio action tests

Dates:
    All default periods fall in June, which overlaps no seasonal event, so
    thresholds are never relaxed unless a test asks for it explicitly.

Dependencies:
- pytest
- pytest-asyncio
- httpx (FastAPI TestClient)
"""

from datetime import date
from typing import Callable, Dict, List, Optional

import pytest

from funnel_compass.models import (
    ComparisonPeriods,
    DiagnosticResult,
    ElasticityEntry,
    ElasticityRanking,
    EntityLevel,
    FunnelSchema,
    FunnelStage,
    MetricSnapshot,
    MetricSource,
    PlatformResult,
    PlatformStatus,
    PlatformType,
    PrimaryKPISummary,
    Severity,
    SpendComparison,
    StageBenchmark,
    StageDiagnostic,
    StageMetrics,
    TimeRange,
    VerticalBenchmarks,
    VerticalType,
)


# ============================================================
# PYTEST PLUGINS CONFIGURATION
# ============================================================

# This must be a module-level constant named pytest_plugins
pytest_plugins: List[str] = ['pytest_asyncio']


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - slow: Marks tests as slow (deselect with -m "not slow")
    - parity: Marks tests pinning documented numeric behaviour
      (worked examples, sentinels, thresholds)

    Usage:
        # Run only fast tests:
        pytest -m "not slow"

        # Run only parity tests:
        pytest -m parity
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'parity: marks tests pinning documented numeric behaviour'
    )


# ============================================================
# PERIOD FIXTURES
# ============================================================

CURRENT_START = date(2024, 6, 10)
CURRENT_END = date(2024, 6, 16)
PREVIOUS_START = date(2024, 6, 3)
PREVIOUS_END = date(2024, 6, 9)


@pytest.fixture
def comparison_periods() -> ComparisonPeriods:
    """Two consecutive June weeks, clear of every seasonal window."""
    return ComparisonPeriods(
        current=TimeRange(since=CURRENT_START, until=CURRENT_END),
        previous=TimeRange(since=PREVIOUS_START, until=PREVIOUS_END),
    )


# ============================================================
# SNAPSHOT FIXTURES
# ============================================================

SnapshotFactory = Callable[..., MetricSnapshot]


@pytest.fixture
def make_snapshot() -> SnapshotFactory:
    """
    Factory for MetricSnapshot objects.

    Stage counts are passed as keyword arguments named after the stage
    metric; `top_level` is copied into the sparse topLevel mapping.

    Example:
        snap = make_snapshot(spend=1000, impressions=100000, purchase=50)
    """

    def _make(
        spend: float = 1000.0,
        current: bool = True,
        entity_id: str = "act_123",
        entity_level: EntityLevel = EntityLevel.ACCOUNT,
        top_level: Optional[Dict[str, float]] = None,
        costs: Optional[Dict[str, float]] = None,
        **counts: float,
    ) -> MetricSnapshot:
        costs = costs or {}
        return MetricSnapshot(
            entityId=entity_id,
            entityLevel=entity_level,
            periodStart=CURRENT_START if current else PREVIOUS_START,
            periodEnd=CURRENT_END if current else PREVIOUS_END,
            spend=spend,
            stages={
                metric: StageMetrics(count=count, cost=costs.get(metric))
                for metric, count in counts.items()
            },
            topLevel=dict(top_level or {}),
        )

    return _make


@pytest.fixture
def commerce_funnel() -> FunnelSchema:
    """impressions -> clicks -> add_to_cart -> purchase, purchase is the KPI."""
    return FunnelSchema(
        vertical=VerticalType.COMMERCE,
        stages=[
            FunnelStage(name="awareness", metric="impressions", metricSource=MetricSource.TOP_LEVEL),
            FunnelStage(name="click", metric="clicks", metricSource=MetricSource.TOP_LEVEL),
            FunnelStage(name="add_to_cart", metric="add_to_cart", metricSource=MetricSource.ACTIONS),
            FunnelStage(
                name="purchase",
                metric="purchase",
                metricSource=MetricSource.ACTIONS,
                costMetric="purchase",
                costMetricSource=MetricSource.COST_PER_ACTION_TYPE,
            ),
        ],
        primaryKPI="purchase",
        roasMetric="purchase_roas",
    )


@pytest.fixture
def commerce_benchmarks() -> VerticalBenchmarks:
    """Benchmark table matching the commerce_funnel metrics."""
    return VerticalBenchmarks(
        vertical=VerticalType.COMMERCE,
        benchmarks={
            "impressions": StageBenchmark(expectedDropoffRate=1.0, normalVariancePercent=20.0),
            "clicks": StageBenchmark(expectedDropoffRate=0.02, normalVariancePercent=15.0),
            "add_to_cart": StageBenchmark(expectedDropoffRate=0.1, normalVariancePercent=18.0),
            "purchase": StageBenchmark(expectedDropoffRate=0.25, normalVariancePercent=20.0),
        },
    )


@pytest.fixture
def healthy_pair(make_snapshot: SnapshotFactory):
    """Identical current and previous weeks: nothing should be flagged."""
    counts = dict(impressions=100000, clicks=2000, add_to_cart=200, purchase=50)
    return (
        make_snapshot(spend=1000.0, current=True, **counts),
        make_snapshot(spend=1000.0, current=False, **counts),
    )


@pytest.fixture
def checkout_broken_pair(make_snapshot: SnapshotFactory):
    """
    Same traffic and carts, half the purchases.

    Previous: 200 carts -> 50 purchases (25%)
    Current:  200 carts -> 25 purchases (12.5%)
    """
    return (
        make_snapshot(spend=1000.0, current=True, impressions=100000, clicks=2000, add_to_cart=200, purchase=25),
        make_snapshot(spend=1000.0, current=False, impressions=100000, clicks=2000, add_to_cart=200, purchase=50),
    )


# ============================================================
# DIAGNOSTIC RESULT FACTORIES
# ============================================================


@pytest.fixture
def make_diagnostic_result(comparison_periods: ComparisonPeriods) -> Callable[..., DiagnosticResult]:
    """
    Factory for DiagnosticResult objects with a controllable primary KPI,
    impression volume (for CPM) and elasticity loss.

    Example:
        result = make_diagnostic_result(kpi_delta=40.0, kpi_significant=True)
    """

    def _make(
        platform: PlatformType = PlatformType.META,
        kpi_delta: float = 0.0,
        kpi_significant: bool = False,
        spend_current: float = 1000.0,
        spend_previous: float = 1000.0,
        impressions_current: float = 100000.0,
        impressions_previous: float = 100000.0,
        elasticity_losses: Optional[Dict[str, float]] = None,
    ) -> DiagnosticResult:
        impressions_delta = impressions_current - impressions_previous
        stage = StageDiagnostic(
            stageName="awareness",
            metric="impressions",
            currentValue=impressions_current,
            previousValue=impressions_previous,
            delta=impressions_delta,
            deltaPercent=impressions_delta / impressions_previous * 100 if impressions_previous else 0.0,
            isSignificant=False,
            severity=Severity.HEALTHY,
        )

        ranking = [
            ElasticityEntry(stage=name, estimatedRevenueDelta=loss, severity=Severity.WARNING)
            for name, loss in sorted((elasticity_losses or {}).items(), key=lambda item: item[1])
        ]

        return DiagnosticResult(
            vertical=VerticalType.COMMERCE,
            entityId=f"{platform.value}_account",
            platform=platform,
            periods=comparison_periods,
            spend=SpendComparison(current=spend_current, previous=spend_previous),
            primaryKPI=PrimaryKPISummary(
                name="purchase",
                metric="purchase",
                current=20.0 * (1 + kpi_delta / 100),
                previous=20.0,
                deltaPercent=kpi_delta,
                isSignificant=kpi_significant,
                severity=Severity.WARNING if kpi_significant and kpi_delta > 0 else Severity.HEALTHY,
            ),
            stageAnalysis=[stage],
            elasticity=ElasticityRanking(
                totalEstimatedRevenueLoss=sum(e.estimatedRevenueDelta for e in ranking),
                impactRanking=ranking,
            ),
        )

    return _make


@pytest.fixture
def success() -> Callable[[DiagnosticResult], PlatformResult]:
    """Wrap a DiagnosticResult into a successful PlatformResult."""

    def _wrap(result: DiagnosticResult) -> PlatformResult:
        return PlatformResult(platform=result.platform, status=PlatformStatus.SUCCESS, result=result)

    return _wrap


@pytest.fixture
def failure() -> Callable[[PlatformType], PlatformResult]:
    """A failed PlatformResult for the given platform."""

    def _wrap(platform: PlatformType, error: str = "API timeout") -> PlatformResult:
        return PlatformResult(platform=platform, status=PlatformStatus.ERROR, error=error)

    return _wrap
