"""
Pydantic models for the Funnel Compass analytics core and its HTTP surface.

This module provides type-safe data validation and serialization for:
- Raw inputs: time ranges, metric snapshots, funnel schemas, benchmarks,
  account history and the optional diagnostic context
- Single-platform output: stage diagnostics, drop-offs, economic impact,
  findings, elasticity ranking and the assembled DiagnosticResult
- Portfolio output: platform results, cross-platform findings, budget
  recommendations, ranked portfolio actions
- Request bodies for the /diagnostics endpoints

Field names are camelCase so that the JSON contract seen by API consumers
matches the attribute names used throughout the services.

Sparse mappings (`MetricSnapshot.topLevel`, `VerticalBenchmarks.benchmarks`,
`AccountHistory.weeklyValues`) treat an absent key as "not reported", never
as zero. Read them with `.get()`.

All models use Pydantic v2 syntax.
"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

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
# Time Ranges
# =============================================================================


class TimeRange(BaseModel):
    """Inclusive calendar date range with `since <= until`."""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={"example": {"since": "2024-01-08", "until": "2024-01-14"}},
    )

    since: date = Field(..., description="First day of the range (inclusive)")
    until: date = Field(..., description="Last day of the range (inclusive)")

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if self.since > self.until:
            raise ValueError(f"since ({self.since}) must not be after until ({self.until})")
        return self

    @property
    def days(self) -> int:
        return (self.until - self.since).days + 1


class ComparisonPeriods(BaseModel):
    """Current period and the equal-length period immediately before it."""
    model_config = ConfigDict(frozen=True)

    current: TimeRange
    previous: TimeRange


# =============================================================================
# Raw Inputs
# =============================================================================


class StageMetrics(BaseModel):
    """Volume and (optional) unit cost of one funnel stage in one period."""
    model_config = ConfigDict(frozen=True)

    count: float = Field(..., ge=0.0, description="Event volume for the stage")
    cost: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Cost per event for the stage, null if not billable/reported",
    )


class MetricSnapshot(BaseModel):
    """
    Immutable record of one advertising entity over one period.

    `stages` is keyed by `FunnelStage.metric`. `topLevel` is sparse: a missing
    key means the platform did not report the metric, not that it was zero.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "entityId": "act_123456789",
                "entityLevel": "account",
                "periodStart": "2024-01-08",
                "periodEnd": "2024-01-14",
                "spend": 1200.0,
                "stages": {
                    "impressions": {"count": 100000, "cost": 12.0},
                    "purchase": {"count": 60, "cost": 20.0},
                },
                "topLevel": {"ctr": 1.2, "cpm": 12.0},
            }
        },
    )

    entityId: str = Field(..., min_length=1, description="Account, campaign, adset or ad ID")
    entityLevel: EntityLevel = Field(default=EntityLevel.ACCOUNT)
    periodStart: date
    periodEnd: date
    spend: float = Field(..., ge=0.0, description="Total spend in the period")
    stages: Dict[str, StageMetrics] = Field(default_factory=dict)
    topLevel: Dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_period(self) -> "MetricSnapshot":
        if self.periodStart > self.periodEnd:
            raise ValueError("periodStart must not be after periodEnd")
        return self

    def top_level_value(self, key: str) -> Optional[float]:
        """Optional lookup into `topLevel`; None when the metric was not reported."""
        return self.topLevel.get(key)


class FunnelStage(BaseModel):
    """
    One named stage of a funnel schema.

    `isConversion` marks a stage other than the last as conversion-like, so
    that its economic impact is attributed directly rather than attenuated.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Human-readable stage label")
    metric: str = Field(..., min_length=1, description="Metric key for the stage volume")
    metricSource: MetricSource
    costMetric: Optional[str] = None
    costMetricSource: Optional[MetricSource] = None
    isConversion: bool = False


class FunnelSchema(BaseModel):
    """
    Ordered funnel definition for a vertical on a platform.

    Stage i is assumed to feed stage i+1. `primaryKPI` names the metric
    (or cost metric) of the stage that drives headline severity.
    """
    model_config = ConfigDict(frozen=True)

    vertical: VerticalType
    stages: List[FunnelStage] = Field(..., min_length=1)
    primaryKPI: str
    roasMetric: Optional[str] = None

    @model_validator(mode="after")
    def _check_stages(self) -> "FunnelSchema":
        names = [s.name for s in self.stages]
        if len(set(names)) != len(names):
            raise ValueError("funnel stage names must be unique")
        if self.primary_stage() is None:
            raise ValueError(f"primaryKPI '{self.primaryKPI}' does not name any funnel stage")
        return self

    def primary_stage(self) -> Optional[FunnelStage]:
        for stage in self.stages:
            if stage.metric == self.primaryKPI or stage.costMetric == self.primaryKPI:
                return stage
        return None


class StageBenchmark(BaseModel):
    """Vertical default behaviour of a single stage."""
    model_config = ConfigDict(frozen=True)

    expectedDropoffRate: float = Field(
        ...,
        ge=0.0,
        description="Expected share of the stage above that reaches this stage",
    )
    normalVariancePercent: float = Field(
        ...,
        ge=0.0,
        description="Normal period-over-period variance before a change is flagged",
    )


class VerticalBenchmarks(BaseModel):
    """Per-metric benchmark table for a vertical/platform combination."""
    model_config = ConfigDict(frozen=True)

    vertical: VerticalType
    benchmarks: Dict[str, StageBenchmark] = Field(default_factory=dict)


class AccountHistory(BaseModel):
    """Trailing per-period metric values for one account, most recent first."""
    model_config = ConfigDict(frozen=True)

    weeklyValues: Dict[str, List[float]] = Field(default_factory=dict)

    @property
    def weeksOfData(self) -> int:
        return max((len(v) for v in self.weeklyValues.values()), default=0)


# =============================================================================
# Diagnostic Context (collaborator-populated, every field optional)
# =============================================================================


class SubEntityBreakdown(BaseModel):
    """Spend and outcome of one child entity (campaign/adset/ad)."""
    entityId: str
    entityLevel: EntityLevel
    spend: float = Field(default=0.0, ge=0.0)
    conversions: float = Field(default=0.0, ge=0.0)
    impressions: Optional[float] = None
    dailyBudget: Optional[float] = None
    inLearningPhase: Optional[bool] = None


class PlacementBreakdown(BaseModel):
    """Delivery and outcome for one placement (feed, stories, search...)."""
    placement: str
    spend: float = Field(default=0.0, ge=0.0)
    impressions: float = Field(default=0.0, ge=0.0)
    clicks: float = Field(default=0.0, ge=0.0)
    conversions: float = Field(default=0.0, ge=0.0)


class AdBreakdown(BaseModel):
    """Delivery and outcome for one ad creative."""
    adId: str
    spend: float = Field(default=0.0, ge=0.0)
    impressions: float = Field(default=0.0, ge=0.0)
    clicks: float = Field(default=0.0, ge=0.0)
    conversions: float = Field(default=0.0, ge=0.0)


class DiagnosticContext(BaseModel):
    """
    Optional grab-bag passed through to advisors.

    A field left as None means the data is unavailable. It must not be read
    as an empty list or as zero.
    """
    subEntities: Optional[List[SubEntityBreakdown]] = None
    placementBreakdowns: Optional[List[PlacementBreakdown]] = None
    adBreakdowns: Optional[List[AdBreakdown]] = None
    historicalSnapshots: Optional[List[MetricSnapshot]] = None
    attributionWindow: Optional[str] = None
    previousAttributionWindow: Optional[str] = None


# =============================================================================
# Single-Platform Diagnostic Output
# =============================================================================


class EconomicImpact(BaseModel):
    """Dollar translation of a stage or drop-off change."""
    model_config = ConfigDict(frozen=True)

    estimatedRevenueDelta: float = Field(..., description="Signed revenue delta in dollars")
    conversionDelta: float
    revenueImpactPercent: float = Field(
        ...,
        description="Delta relative to the inferred previous-period revenue baseline",
    )


class StageDiagnostic(BaseModel):
    """Period-over-period comparison for one funnel stage."""
    model_config = ConfigDict(frozen=True)

    stageName: str
    metric: str
    currentValue: float
    previousValue: float
    delta: float
    deltaPercent: float
    isSignificant: bool
    severity: Severity
    thresholdPercent: Optional[float] = Field(
        default=None,
        description="Variance threshold the change was judged against",
    )
    economicImpact: Optional[EconomicImpact] = None


class FunnelDropoff(BaseModel):
    """Conversion rate between two adjacent stages, current vs previous."""
    model_config = ConfigDict(frozen=True)

    fromStage: str
    toStage: str
    currentRate: float
    previousRate: float
    deltaPercent: float

    def is_worsened(self, threshold_percent: float = -20.0) -> bool:
        """True when the rate fell by more than `threshold_percent`."""
        return self.deltaPercent < threshold_percent


class Finding(BaseModel):
    """Human-readable advisor output. `stage` may be a synthetic label."""
    model_config = ConfigDict(frozen=True)

    severity: Severity
    stage: str
    message: str
    recommendation: Optional[str] = None


class AdvisorFailure(BaseModel):
    """An advisor that raised instead of returning findings."""
    model_config = ConfigDict(frozen=True)

    advisor: str
    error: str


class PrimaryKPISummary(BaseModel):
    """Headline cost-per-result comparison for the schema's primary KPI."""
    model_config = ConfigDict(frozen=True)

    name: str
    metric: str
    current: float
    previous: float
    deltaPercent: float
    isSignificant: bool = False
    severity: Severity


class SpendComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    current: float = Field(..., ge=0.0)
    previous: float = Field(..., ge=0.0)


class ElasticityEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: str
    estimatedRevenueDelta: float
    severity: Severity


class ElasticityRanking(BaseModel):
    """Significant revenue-losing stages, worst loss first."""
    model_config = ConfigDict(frozen=True)

    totalEstimatedRevenueLoss: float = 0.0
    impactRanking: List[ElasticityEntry] = Field(default_factory=list)


class DiagnosticResult(BaseModel):
    """Complete output of one Funnel Walker run."""
    model_config = ConfigDict(frozen=True)

    vertical: VerticalType
    entityId: str
    platform: Optional[PlatformType] = None
    periods: ComparisonPeriods
    spend: SpendComparison
    primaryKPI: PrimaryKPISummary
    stageAnalysis: List[StageDiagnostic] = Field(default_factory=list)
    dropoffs: List[FunnelDropoff] = Field(default_factory=list)
    bottleneck: Optional[StageDiagnostic] = None
    findings: List[Finding] = Field(default_factory=list)
    advisorFailures: List[AdvisorFailure] = Field(default_factory=list)
    elasticity: Optional[ElasticityRanking] = None
    seasonalEvent: Optional[str] = None


# =============================================================================
# Portfolio (Multi-Platform) Output
# =============================================================================


class PlatformResult(BaseModel):
    """One platform's outcome in a portfolio run."""
    platform: PlatformType
    status: PlatformStatus
    result: Optional[DiagnosticResult] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_status(self) -> "PlatformResult":
        if self.status == PlatformStatus.SUCCESS and self.result is None:
            raise ValueError("a successful platform result must carry a DiagnosticResult")
        if self.status == PlatformStatus.ERROR and not self.error:
            raise ValueError("a failed platform result must carry an error message")
        return self

    @property
    def succeeded(self) -> bool:
        return self.status == PlatformStatus.SUCCESS and self.result is not None


class CrossPlatformFinding(BaseModel):
    """A pattern that only appears when several platforms are compared."""
    signal: CrossPlatformSignalType
    severity: Severity
    platforms: List[PlatformType]
    message: str
    recommendation: str
    confidenceScore: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    estimatedRevenueRecovery: Optional[float] = None
    riskLevel: Optional[RiskLevel] = None


class BudgetRecommendation(BaseModel):
    """Suggestion to move budget from a worse platform to a better one."""
    model_config = ConfigDict(populate_by_name=True)

    fromPlatform: PlatformType = Field(..., alias="from")
    toPlatform: PlatformType = Field(..., alias="to")
    reason: str
    confidence: ConfidenceTier
    suggestedShiftPercent: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    estimatedKPIImprovement: Optional[float] = None
    estimatedRevenueRecovery: Optional[float] = None
    riskLevel: Optional[RiskLevel] = None


class PortfolioAction(BaseModel):
    """One globally ranked action across the portfolio."""
    priority: int = Field(..., ge=1)
    action: str
    platforms: List[PlatformType]
    confidenceScore: float = Field(..., ge=0.0, le=1.0)
    estimatedRevenueRecovery: float
    riskLevel: RiskLevel
    requiredBudgetShiftPercent: Optional[float] = None


class CorrelationResult(BaseModel):
    """Correlator output. Signals are independent and not de-duplicated."""
    findings: List[CrossPlatformFinding] = Field(default_factory=list)
    budgetRecommendations: List[BudgetRecommendation] = Field(default_factory=list)
    analyzedPlatformCount: int = 0
    failedPlatformCount: int = 0


class MultiPlatformResult(BaseModel):
    """Complete output of a portfolio run."""
    platforms: List[PlatformResult]
    crossPlatformFindings: List[CrossPlatformFinding] = Field(default_factory=list)
    budgetRecommendations: List[BudgetRecommendation] = Field(default_factory=list)
    portfolioActions: List[PortfolioAction] = Field(default_factory=list)
    executiveSummary: str = ""
    failedPlatformCount: int = 0

    @property
    def is_successful(self) -> bool:
        """A portfolio run succeeds when at least one platform succeeded."""
        return any(p.succeeded for p in self.platforms)


# =============================================================================
# Run Configuration
# =============================================================================


class PlatformRunConfig(BaseModel):
    """Per-platform settings for a portfolio run."""
    platform: PlatformType
    entityId: str = Field(..., min_length=1)
    entityLevel: EntityLevel = EntityLevel.ACCOUNT
    enabled: bool = True
    averageOrderValue: Optional[float] = Field(default=None, gt=0.0)
    funnel: Optional[FunnelSchema] = None
    benchmarks: Optional[VerticalBenchmarks] = None
    accountHistory: Optional[AccountHistory] = None
    periods: Optional[ComparisonPeriods] = Field(
        default=None,
        description="Overrides the run-wide comparison periods for this platform",
    )


class PortfolioRunConfig(BaseModel):
    """Which platforms to diagnose and over which periods."""
    vertical: VerticalType = VerticalType.COMMERCE
    platforms: List[PlatformRunConfig] = Field(default_factory=list)
    referenceDate: Optional[date] = None
    periodDays: Optional[int] = Field(default=None, ge=1, le=90)


# =============================================================================
# API Request Bodies
# =============================================================================


class FunnelDiagnosticRequest(BaseModel):
    """
    Body for POST /diagnostics/funnel.

    Either supply `funnel` explicitly or let the built-in catalog resolve one
    from `platform` + `vertical`.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "platform": "meta",
                "vertical": "commerce",
                "averageOrderValue": 50.0,
                "current": MetricSnapshot.model_config["json_schema_extra"]["example"],
                "previous": MetricSnapshot.model_config["json_schema_extra"]["example"],
            }
        }
    )

    platform: Optional[PlatformType] = None
    vertical: VerticalType = VerticalType.COMMERCE
    funnel: Optional[FunnelSchema] = None
    benchmarks: Optional[VerticalBenchmarks] = None
    accountHistory: Optional[AccountHistory] = None
    averageOrderValue: Optional[float] = Field(default=None, gt=0.0)
    current: MetricSnapshot
    previous: MetricSnapshot
    context: Optional[DiagnosticContext] = None

    @model_validator(mode="after")
    def _check_source(self) -> "FunnelDiagnosticRequest":
        if self.funnel is None and self.platform is None:
            raise ValueError("either 'funnel' or 'platform' must be provided")
        return self


class PortfolioPlatformInput(BaseModel):
    """One platform's inline snapshot pair inside POST /diagnostics/portfolio."""
    platform: PlatformType
    current: MetricSnapshot
    previous: MetricSnapshot
    averageOrderValue: Optional[float] = Field(default=None, gt=0.0)
    funnel: Optional[FunnelSchema] = None
    accountHistory: Optional[AccountHistory] = None


class PortfolioDiagnosticRequest(BaseModel):
    """Body for POST /diagnostics/portfolio."""
    vertical: VerticalType = VerticalType.COMMERCE
    platforms: List[PortfolioPlatformInput] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _unique_platforms(self) -> "PortfolioDiagnosticRequest":
        seen = [p.platform for p in self.platforms]
        if len(set(seen)) != len(seen):
            raise ValueError("each platform may appear only once per portfolio request")
        return self
