"""
Funnel Walker - per-entity funnel diagnostic.

Walks any FunnelSchema over a current and a previous MetricSnapshot and
produces a DiagnosticResult. The walker is vertical-agnostic: the schema
defines the shape, and the registered advisors add vertical-specific findings.

Pipeline (single pass, no I/O):
1. Stage analysis: pull each stage's volume from its declared source, compute
   delta / deltaPercent, resolve the effective variance, decide significance,
   band the severity, attach economic impact.
2. Drop-offs between every pair of adjacent stages (zero-guarded rates).
3. Bottleneck: the significant losing stage with the largest dollar loss.
4. Primary KPI summary from the schema's primary stage (cost per result).
5. Findings: summary findings, then every advisor in list order. An advisor
   that raises is logged and recorded as an AdvisorFailure; the rest still run.
6. Elasticity ranking from the completed stage analysis.

Severity Bands:
    threshold = effective variance, or half the spend-based minimum
    detectable change when no variance source covers the metric (so that
    "significant" and "critical" coincide in both modes).

    bad direction (volume down, cost up):
        |delta| > 2 x threshold  -> critical
        |delta| > threshold      -> warning
        |delta| > threshold / 2  -> info
        otherwise                -> healthy
    good direction:
        significant -> info, otherwise healthy

Failure Policy:
    Malformed input raises MalformedSnapshotError: snapshots describing
    different entities, or a stage metric reported by neither snapshot in any
    of its declared locations. A metric reported by only one snapshot reads
    as 0 on the other side.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from funnel_compass.models import (
    AccountHistory,
    AdvisorFailure,
    ComparisonPeriods,
    DiagnosticContext,
    DiagnosticResult,
    Finding,
    FunnelDropoff,
    FunnelSchema,
    FunnelStage,
    MetricSnapshot,
    MetricSource,
    PlatformType,
    PrimaryKPISummary,
    Severity,
    SpendComparison,
    StageDiagnostic,
    TimeRange,
    VerticalBenchmarks,
)
from funnel_compass.services.advisors import (
    DROPOFF_CRITICAL_PERCENT,
    DROPOFF_WARNING_PERCENT,
    FindingAdvisor,
    build_summary_findings,
)
from funnel_compass.services.economic_impact import (
    build_elasticity_ranking,
    compute_stage_economic_impact,
)
from funnel_compass.services.errors import MalformedSnapshotError
from funnel_compass.services.seasonality import get_active_seasonal_event
from funnel_compass.services.significance import (
    is_significant_change,
    minimum_detectable_change,
    percent_change,
)
from funnel_compass.services.thresholds import MIN_HISTORY_PERIODS, resolve_variance

logger = logging.getLogger(__name__)

# Sources whose values may also be reported as flat top-level fields
_FLAT_SOURCES = {MetricSource.TOP_LEVEL, MetricSource.METRICS}


# =============================================================================
# Snapshot Reads
# =============================================================================


def read_stage_volume(snapshot: MetricSnapshot, stage: FunnelStage) -> Optional[float]:
    """
    Stage volume from the snapshot, or None when not reported.

    `stages[metric]` is checked first. Stages sourced from top-level or
    platform metrics fields may also be reported flat in `topLevel`.
    """
    metrics = snapshot.stages.get(stage.metric)
    if metrics is not None:
        return metrics.count
    if stage.metricSource in _FLAT_SOURCES:
        return snapshot.top_level_value(stage.metric)
    return None


def read_stage_cost(snapshot: MetricSnapshot, stage: FunnelStage) -> Optional[float]:
    """
    Cost per result for a stage, or None when it cannot be determined.

    Order: the stage's reported cost, the flat cost metric, then spend / volume.
    """
    metrics = snapshot.stages.get(stage.metric)
    if metrics is not None and metrics.cost is not None:
        return metrics.cost

    if stage.costMetric and stage.costMetricSource in _FLAT_SOURCES:
        value = snapshot.top_level_value(stage.costMetric)
        if value is not None:
            return value

    volume = read_stage_volume(snapshot, stage)
    if volume:
        return snapshot.spend / volume
    return None


def _check_snapshots(current: MetricSnapshot, previous: MetricSnapshot) -> None:
    if current.entityId != previous.entityId or current.entityLevel != previous.entityLevel:
        raise MalformedSnapshotError(
            f"Snapshots describe different entities: "
            f"{current.entityLevel.value}:{current.entityId} vs "
            f"{previous.entityLevel.value}:{previous.entityId}"
        )


# =============================================================================
# Severity
# =============================================================================


def severity_threshold(variance: Optional[float], spend: float) -> float:
    """Band width for severity classification (see module docstring)."""
    if variance is not None:
        return variance
    return minimum_detectable_change(spend) / 2.0


def classify_severity(
    delta_percent: float,
    threshold: float,
    is_significant: bool,
    is_cost_metric: bool = False,
) -> Severity:
    """
    Band a change into exactly one severity.

    For cost metrics an increase is bad; for volume metrics a decrease is bad.
    """
    bad_direction = delta_percent > 0 if is_cost_metric else delta_percent < 0
    if not bad_direction:
        return Severity.INFO if is_significant else Severity.HEALTHY

    magnitude = abs(delta_percent)
    if magnitude > 2 * threshold:
        return Severity.CRITICAL
    if magnitude > threshold:
        return Severity.WARNING
    if magnitude > threshold / 2:
        return Severity.INFO
    return Severity.HEALTHY


def _cost_history_key(stage: FunnelStage) -> str:
    # Meta keys per-action costs by the action name itself
    if stage.costMetric and stage.costMetric != stage.metric:
        return stage.costMetric
    return f"cost_per_{stage.metric}"


# =============================================================================
# Stage Analysis
# =============================================================================


def infer_average_order_value(
    funnel: FunnelSchema,
    current: MetricSnapshot,
) -> Optional[float]:
    """
    AOV implied by ROAS: revenue (roas x spend) per primary conversion.

    Returns None when the schema has no ROAS metric, the snapshot did not
    report it, or there were no conversions or no spend.
    """
    if not funnel.roasMetric:
        return None

    roas = current.top_level_value(funnel.roasMetric)
    primary = funnel.primary_stage()
    conversions = read_stage_volume(current, primary) if primary is not None else None

    if not roas or roas <= 0 or not conversions or current.spend <= 0:
        return None
    return roas * current.spend / conversions


def analyze_stages(
    funnel: FunnelSchema,
    current: MetricSnapshot,
    previous: MetricSnapshot,
    periods: ComparisonPeriods,
    benchmarks: Optional[VerticalBenchmarks] = None,
    account_history: Optional[AccountHistory] = None,
    average_order_value: Optional[float] = None,
    default_variance: Optional[float] = None,
    min_history_periods: int = MIN_HISTORY_PERIODS,
) -> List[StageDiagnostic]:
    """
    Per-stage period-over-period diagnostics in schema order.

    Raises:
        MalformedSnapshotError: If a stage metric is reported by neither snapshot
    """
    last_index = len(funnel.stages) - 1
    diagnostics: List[StageDiagnostic] = []

    for index, stage in enumerate(funnel.stages):
        current_value = read_stage_volume(current, stage)
        previous_value = read_stage_volume(previous, stage)
        if current_value is None and previous_value is None:
            raise MalformedSnapshotError(
                f"Stage '{stage.name}' metric '{stage.metric}' "
                f"({stage.metricSource.value}) is absent from both snapshots"
            )
        current_value = current_value or 0.0
        previous_value = previous_value or 0.0

        delta_percent = percent_change(current_value, previous_value)

        variance = resolve_variance(
            stage.metric,
            account_history,
            periods.current.since,
            periods.current.until,
            benchmarks,
            min_history_periods,
        )
        if variance is None:
            variance = default_variance

        significant = is_significant_change(delta_percent, current.spend, variance)
        threshold = severity_threshold(variance, current.spend)

        diagnostic = StageDiagnostic(
            stageName=stage.name,
            metric=stage.metric,
            currentValue=current_value,
            previousValue=previous_value,
            delta=current_value - previous_value,
            deltaPercent=delta_percent,
            isSignificant=significant,
            severity=classify_severity(delta_percent, threshold, significant),
            thresholdPercent=threshold,
        )

        if average_order_value is not None:
            is_bottom = index == last_index or stage.isConversion
            impact = compute_stage_economic_impact(diagnostic, average_order_value, is_bottom)
            diagnostic = diagnostic.model_copy(update={"economicImpact": impact})

        diagnostics.append(diagnostic)

    return diagnostics


def analyze_dropoffs(stage_analysis: Sequence[StageDiagnostic]) -> List[FunnelDropoff]:
    """
    Conversion rate between each pair of adjacent stages.

    A rate is 0 when the upper stage had no volume. Every pair is reported;
    filtering on `deltaPercent` is left to the advisors.
    """
    dropoffs: List[FunnelDropoff] = []

    for upper, lower in zip(stage_analysis, stage_analysis[1:]):
        current_rate = lower.currentValue / upper.currentValue if upper.currentValue > 0 else 0.0
        previous_rate = lower.previousValue / upper.previousValue if upper.previousValue > 0 else 0.0

        dropoffs.append(FunnelDropoff(
            fromStage=upper.stageName,
            toStage=lower.stageName,
            currentRate=current_rate,
            previousRate=previous_rate,
            deltaPercent=percent_change(current_rate, previous_rate),
        ))

    return dropoffs


def find_bottleneck(stage_analysis: Sequence[StageDiagnostic]) -> Optional[StageDiagnostic]:
    """
    The significant losing stage with the most negative revenue delta.

    Stages without economic impact (no AOV available) are ranked by
    deltaPercent instead. Returns None when no stage declined significantly.
    Ties go to the stage earliest in the funnel.
    """
    losing = [s for s in stage_analysis if s.isSignificant and s.deltaPercent < 0]
    if not losing:
        return None

    priced = [s for s in losing if s.economicImpact is not None]
    if priced:
        return min(priced, key=lambda s: s.economicImpact.estimatedRevenueDelta)
    return min(losing, key=lambda s: s.deltaPercent)


def summarize_primary_kpi(
    funnel: FunnelSchema,
    current: MetricSnapshot,
    previous: MetricSnapshot,
    periods: ComparisonPeriods,
    account_history: Optional[AccountHistory] = None,
    default_variance: Optional[float] = None,
    min_history_periods: int = MIN_HISTORY_PERIODS,
) -> PrimaryKPISummary:
    """Cost-per-result comparison for the schema's primary KPI stage."""
    stage = funnel.primary_stage()
    current_cost = read_stage_cost(current, stage) or 0.0
    previous_cost = read_stage_cost(previous, stage) or 0.0
    delta_percent = percent_change(current_cost, previous_cost)

    # Cost variance comes from history only; volume benchmarks do not apply
    variance = resolve_variance(
        _cost_history_key(stage),
        account_history,
        periods.current.since,
        periods.current.until,
        None,
        min_history_periods,
        acquisition_cost=True,
    )
    if variance is None:
        variance = default_variance

    significant = is_significant_change(delta_percent, current.spend, variance)
    threshold = severity_threshold(variance, current.spend)

    return PrimaryKPISummary(
        name=stage.name,
        metric=funnel.primaryKPI,
        current=current_cost,
        previous=previous_cost,
        deltaPercent=delta_percent,
        isSignificant=significant,
        severity=classify_severity(delta_percent, threshold, significant, is_cost_metric=True),
    )


# =============================================================================
# Advisors
# =============================================================================


def advisor_name(advisor: FindingAdvisor) -> str:
    return getattr(advisor, "__name__", type(advisor).__name__)


def run_advisors(
    advisors: Sequence[FindingAdvisor],
    stage_analysis: List[StageDiagnostic],
    dropoffs: List[FunnelDropoff],
    current: MetricSnapshot,
    previous: MetricSnapshot,
    context: Optional[DiagnosticContext] = None,
) -> Tuple[List[Finding], List[AdvisorFailure]]:
    """
    Call every advisor in order, isolating failures.

    An advisor's output is consumed in full before any of it is kept: one
    that raises (immediately or while its result is iterated), returns
    something that is not iterable, or yields anything other than Finding
    objects is recorded as an AdvisorFailure and contributes no findings.

    Returns:
        (findings in advisor order, failures in advisor order)
    """
    findings: List[Finding] = []
    failures: List[AdvisorFailure] = []

    for advisor in advisors:
        name = advisor_name(advisor)
        try:
            produced = list(advisor(stage_analysis, dropoffs, current, previous, context))
            invalid = [item for item in produced if not isinstance(item, Finding)]
            if invalid:
                raise TypeError(f"advisor returned {type(invalid[0]).__name__}, expected Finding")
        except Exception as exc:
            logger.exception(f"Advisor '{name}' failed for entity {current.entityId}")
            failures.append(AdvisorFailure(advisor=name, error=str(exc) or type(exc).__name__))
            continue
        findings.extend(produced)

    return findings, failures


# =============================================================================
# Public API
# =============================================================================


def analyze_funnel(
    funnel: FunnelSchema,
    current: MetricSnapshot,
    previous: MetricSnapshot,
    periods: Optional[ComparisonPeriods] = None,
    benchmarks: Optional[VerticalBenchmarks] = None,
    advisors: Optional[Sequence[FindingAdvisor]] = None,
    context: Optional[DiagnosticContext] = None,
    account_history: Optional[AccountHistory] = None,
    average_order_value: Optional[float] = None,
    platform: Optional[PlatformType] = None,
    include_summary: bool = True,
    default_variance: Optional[float] = None,
    min_history_periods: int = MIN_HISTORY_PERIODS,
    dropoff_warning_percent: float = DROPOFF_WARNING_PERCENT,
    dropoff_critical_percent: float = DROPOFF_CRITICAL_PERCENT,
) -> DiagnosticResult:
    """
    Diagnose one entity's funnel, current vs previous period.

    Args:
        funnel: Ordered funnel schema
        current: Snapshot for the current period
        previous: Snapshot for the previous period (same entity)
        periods: Comparison periods; derived from the snapshots when omitted
        benchmarks: Vertical benchmark table for variance defaults
        advisors: Ordered advisor list (see services.advisors)
        context: Optional breakdowns passed through to advisors untouched
        account_history: Trailing per-metric values for account variance
        average_order_value: Dollar value of one conversion. When omitted it
            is inferred from the schema's ROAS metric; without either, stages
            carry no economic impact.
        platform: Platform label copied onto the result
        include_summary: Emit the summary findings ahead of the advisors
        default_variance: Variance for metrics with no history or benchmark;
            None uses the spend heuristic
        min_history_periods: History length required for account variance
        dropoff_warning_percent: Drop-off delta that raises a summary warning
        dropoff_critical_percent: Drop-off delta that makes it critical

    Returns:
        DiagnosticResult

    Raises:
        MalformedSnapshotError: On mismatched entities or missing stage metrics
    """
    _check_snapshots(current, previous)

    if periods is None:
        periods = ComparisonPeriods(
            current=TimeRange(since=current.periodStart, until=current.periodEnd),
            previous=TimeRange(since=previous.periodStart, until=previous.periodEnd),
        )

    if average_order_value is None:
        average_order_value = infer_average_order_value(funnel, current)

    stage_analysis = analyze_stages(
        funnel,
        current,
        previous,
        periods,
        benchmarks=benchmarks,
        account_history=account_history,
        average_order_value=average_order_value,
        default_variance=default_variance,
        min_history_periods=min_history_periods,
    )
    dropoffs = analyze_dropoffs(stage_analysis)
    bottleneck = find_bottleneck(stage_analysis)
    primary_kpi = summarize_primary_kpi(
        funnel,
        current,
        previous,
        periods,
        account_history=account_history,
        default_variance=default_variance,
        min_history_periods=min_history_periods,
    )

    findings: List[Finding] = []
    if include_summary:
        findings.extend(build_summary_findings(
            primary_kpi,
            bottleneck,
            stage_analysis,
            dropoffs,
            dropoff_warning_percent,
            dropoff_critical_percent,
        ))

    advisor_findings, failures = run_advisors(
        advisors or [], stage_analysis, dropoffs, current, previous, context
    )
    findings.extend(advisor_findings)

    event = get_active_seasonal_event(periods.current.since, periods.current.until)

    result = DiagnosticResult(
        vertical=funnel.vertical,
        entityId=current.entityId,
        platform=platform,
        periods=periods,
        spend=SpendComparison(current=current.spend, previous=previous.spend),
        primaryKPI=primary_kpi,
        stageAnalysis=stage_analysis,
        dropoffs=dropoffs,
        bottleneck=bottleneck,
        findings=findings,
        advisorFailures=failures,
        elasticity=build_elasticity_ranking(stage_analysis),
        seasonalEvent=event.name if event else None,
    )

    logger.debug(
        f"Funnel walk for {current.entityId}: {len(stage_analysis)} stages, "
        f"{len(findings)} findings, {len(failures)} advisor failures, "
        f"bottleneck={bottleneck.stageName if bottleneck else None}"
    )
    return result
