"""
Package initialization file for Funnel Compass models.

Re-exports every Pydantic schema and enumeration so that services and
routers can import from `funnel_compass.models` directly:

    from funnel_compass.models import MetricSnapshot, Severity, StageDiagnostic
"""

# =============================================================================
# Enums
# =============================================================================

from funnel_compass.models.enums import (
    ConfidenceTier,
    CrossPlatformSignalType,
    EntityLevel,
    MetricSource,
    PlatformStatus,
    PlatformType,
    RiskLevel,
    Severity,
    VerticalType,
)

# =============================================================================
# Schemas
# =============================================================================

from funnel_compass.models.schemas import (
    # -------------------------------------------------------------------------
    # Raw inputs
    # -------------------------------------------------------------------------
    TimeRange,
    ComparisonPeriods,
    StageMetrics,
    MetricSnapshot,
    FunnelStage,
    FunnelSchema,
    StageBenchmark,
    VerticalBenchmarks,
    AccountHistory,
    # -------------------------------------------------------------------------
    # Diagnostic context
    # -------------------------------------------------------------------------
    SubEntityBreakdown,
    PlacementBreakdown,
    AdBreakdown,
    DiagnosticContext,
    # -------------------------------------------------------------------------
    # Single-platform output
    # -------------------------------------------------------------------------
    EconomicImpact,
    StageDiagnostic,
    FunnelDropoff,
    Finding,
    AdvisorFailure,
    PrimaryKPISummary,
    SpendComparison,
    ElasticityEntry,
    ElasticityRanking,
    DiagnosticResult,
    # -------------------------------------------------------------------------
    # Portfolio output
    # -------------------------------------------------------------------------
    PlatformResult,
    CrossPlatformFinding,
    BudgetRecommendation,
    PortfolioAction,
    CorrelationResult,
    MultiPlatformResult,
    # -------------------------------------------------------------------------
    # Run configuration and request bodies
    # -------------------------------------------------------------------------
    PlatformRunConfig,
    PortfolioRunConfig,
    FunnelDiagnosticRequest,
    PortfolioPlatformInput,
    PortfolioDiagnosticRequest,
)


__all__ = [
    # ----- Enums -----
    'ConfidenceTier',
    'CrossPlatformSignalType',
    'EntityLevel',
    'MetricSource',
    'PlatformStatus',
    'PlatformType',
    'RiskLevel',
    'Severity',
    'VerticalType',
    # ----- Raw inputs -----
    'TimeRange',
    'ComparisonPeriods',
    'StageMetrics',
    'MetricSnapshot',
    'FunnelStage',
    'FunnelSchema',
    'StageBenchmark',
    'VerticalBenchmarks',
    'AccountHistory',
    # ----- Diagnostic context -----
    'SubEntityBreakdown',
    'PlacementBreakdown',
    'AdBreakdown',
    'DiagnosticContext',
    # ----- Single-platform output -----
    'EconomicImpact',
    'StageDiagnostic',
    'FunnelDropoff',
    'Finding',
    'AdvisorFailure',
    'PrimaryKPISummary',
    'SpendComparison',
    'ElasticityEntry',
    'ElasticityRanking',
    'DiagnosticResult',
    # ----- Portfolio output -----
    'PlatformResult',
    'CrossPlatformFinding',
    'BudgetRecommendation',
    'PortfolioAction',
    'CorrelationResult',
    'MultiPlatformResult',
    # ----- Run configuration and request bodies -----
    'PlatformRunConfig',
    'PortfolioRunConfig',
    'FunnelDiagnosticRequest',
    'PortfolioPlatformInput',
    'PortfolioDiagnosticRequest',
]
