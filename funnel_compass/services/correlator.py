"""
Cross-Platform Correlator

Looks across independent single-platform diagnostics for patterns that only
emerge at the portfolio level.

Signals:
- market_wide_cpm_increase: two or more platforms each show a CPM increase
  that is significant against that platform's own spend-based threshold.
  One finding names every affected platform; severity follows the smallest
  shared increase; confidence grows with the number of corroborating
  platforms.
- Budget reallocation: for every (worse, better) pair where one platform's
  primary KPI cost rose significantly while the other's fell significantly,
  one BudgetRecommendation from the worse to the better platform.
- halo_effect: one platform raised spend by more than 20% while another
  platform's primary KPI cost fell by more than 10%. An informational, low
  risk finding per (driver, beneficiary) pair.
- platform_conflict: the portfolio holds both significantly worsening and
  significantly improving platforms, i.e. the same partition that yields
  budget recommendations. One warning finding naming all of them.

halo_effect and platform_conflict findings reach the executive summary but
produce no portfolio action.

Failed platforms are excluded from detection and only counted. Findings and
recommendations are independent and never merged; ranking them is the
Portfolio Action Generator's job.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from funnel_compass.models import (
    BudgetRecommendation,
    ConfidenceTier,
    CorrelationResult,
    CrossPlatformFinding,
    CrossPlatformSignalType,
    DiagnosticResult,
    PlatformResult,
    PlatformType,
    RiskLevel,
    Severity,
)
from funnel_compass.services.significance import is_significant_change, percent_change

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MIN_CORROBORATING_PLATFORMS: int = 2

# Smallest shared CPM increase at which the market-wide signal turns critical
MARKET_CPM_CRITICAL_PERCENT: float = 40.0

# Confidence = base + step per corroborating platform, capped at 1.0
MARKET_CONFIDENCE_BASE: float = 0.4
MARKET_CONFIDENCE_STEP: float = 0.2

# Budget shift suggestion = round(divergence / 4), capped
MAX_SUGGESTED_SHIFT_PERCENT: float = 30.0

# Confidence tiers by KPI divergence
HIGH_CONFIDENCE_WORSE_PERCENT: float = 30.0
HIGH_CONFIDENCE_BETTER_PERCENT: float = 20.0
MEDIUM_CONFIDENCE_DIVERGENCE_PERCENT: float = 25.0

# Share of the better platform's KPI improvement expected to carry over
KPI_IMPROVEMENT_CARRYOVER: float = 0.5

# Halo: driver spend growth and beneficiary KPI improvement, in percent
HALO_SPEND_INCREASE_PERCENT: float = 20.0
HALO_KPI_IMPROVEMENT_PERCENT: float = 10.0
HALO_CONFIDENCE_DIVISOR: float = 2000.0
HALO_MAX_CONFIDENCE: float = 0.8

# Conflict confidence = summed KPI swings / 100, capped
CONFLICT_MAX_CONFIDENCE: float = 0.9


def successful_results(platform_results: Sequence[PlatformResult]) -> List[Tuple[PlatformType, DiagnosticResult]]:
    """(platform, result) pairs for successful entries, input order kept."""
    return [(pr.platform, pr.result) for pr in platform_results if pr.succeeded]


def shift_risk_level(shift_percent: float) -> RiskLevel:
    """Risk of a budget move: > 30% high, > 10% medium, otherwise low."""
    if shift_percent > 30:
        return RiskLevel.HIGH
    if shift_percent > 10:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# =============================================================================
# Market-Wide Signals
# =============================================================================


def platform_cpm_change(result: DiagnosticResult) -> Optional[float]:
    """
    Period-over-period CPM change in percent, from spend and impressions.

    Returns None when the funnel has no impressions stage or either period
    had no impressions or no spend.
    """
    impressions = next((s for s in result.stageAnalysis if s.metric == "impressions"), None)
    if impressions is None or impressions.currentValue <= 0 or impressions.previousValue <= 0:
        return None

    current_cpm = result.spend.current / impressions.currentValue * 1000
    previous_cpm = result.spend.previous / impressions.previousValue * 1000
    if previous_cpm <= 0:
        return None
    return percent_change(current_cpm, previous_cpm)


def detect_market_wide_cpm_increase(
    results: Sequence[Tuple[PlatformType, DiagnosticResult]],
) -> List[CrossPlatformFinding]:
    """At most one market_wide_cpm_increase finding for the whole portfolio."""
    rising: List[Tuple[PlatformType, float]] = []

    for platform, result in results:
        change = platform_cpm_change(result)
        if change is None or change <= 0:
            continue
        if is_significant_change(change, result.spend.current):
            rising.append((platform, change))

    if len(rising) < MIN_CORROBORATING_PLATFORMS:
        return []

    shared = min(change for _, change in rising)
    critical = shared > MARKET_CPM_CRITICAL_PERCENT
    confidence = min(MARKET_CONFIDENCE_BASE + MARKET_CONFIDENCE_STEP * len(rising), 1.0)
    names = ", ".join(p.value for p, _ in rising)

    return [CrossPlatformFinding(
        signal=CrossPlatformSignalType.MARKET_WIDE_CPM_INCREASE,
        severity=Severity.CRITICAL if critical else Severity.WARNING,
        platforms=[p for p, _ in rising],
        message=(
            f"CPMs increased on {names} (at least +{shared:.1f}% each). "
            f"This points to market-wide competition rather than an account-specific issue."
        ),
        recommendation=(
            "Market-wide CPM increases are typically seasonal (Q4, BFCM) or driven by macro "
            "events. Consider reducing spend until costs normalize, or move budget to "
            "lower-CPM placements and channels that are less affected."
        ),
        confidenceScore=confidence,
        riskLevel=RiskLevel.HIGH if critical else RiskLevel.MEDIUM,
    )]


# =============================================================================
# Halo Effects
# =============================================================================


def detect_halo_effects(
    results: Sequence[Tuple[PlatformType, DiagnosticResult]],
) -> List[CrossPlatformFinding]:
    """
    One halo_effect finding per ordered (driver, beneficiary) pair.

    The driver's spend grew by more than 20% while the beneficiary's primary
    KPI cost fell by more than 10%. Confidence is
    min(spend change x |KPI change| / 2000, 0.8).
    """
    findings: List[CrossPlatformFinding] = []

    for driver_platform, driver in results:
        spend_change = 0.0
        if driver.spend.previous > 0:
            spend_change = percent_change(driver.spend.current, driver.spend.previous)
        if spend_change <= HALO_SPEND_INCREASE_PERCENT:
            continue

        for beneficiary_platform, beneficiary in results:
            if beneficiary_platform == driver_platform:
                continue
            kpi_delta = beneficiary.primaryKPI.deltaPercent
            if kpi_delta >= -HALO_KPI_IMPROVEMENT_PERCENT:
                continue

            driver_name, beneficiary_name = driver_platform.value, beneficiary_platform.value
            findings.append(CrossPlatformFinding(
                signal=CrossPlatformSignalType.HALO_EFFECT,
                severity=Severity.INFO,
                platforms=[driver_platform, beneficiary_platform],
                message=(
                    f"{driver_name} spend increased {spend_change:.1f}% and {beneficiary_name} "
                    f"{beneficiary.primaryKPI.name} cost improved {kpi_delta:.1f}%. {driver_name} "
                    f"awareness may be driving {beneficiary_name} conversions."
                ),
                recommendation=(
                    f"Evaluate {driver_name} as an awareness driver rather than on direct CPA alone, "
                    f"and watch {beneficiary_name} before cutting {driver_name} spend."
                ),
                confidenceScore=min(spend_change * abs(kpi_delta) / HALO_CONFIDENCE_DIVISOR, HALO_MAX_CONFIDENCE),
                riskLevel=RiskLevel.LOW,
            ))

    return findings


# =============================================================================
# Budget Reallocation
# =============================================================================


def partition_by_kpi(
    results: Sequence[Tuple[PlatformType, DiagnosticResult]],
) -> Tuple[List[Tuple[PlatformType, DiagnosticResult]], List[Tuple[PlatformType, DiagnosticResult]]]:
    """(worsening, improving): significant primary-KPI cost rises and falls, input order kept."""
    worsening = [
        (p, r) for p, r in results
        if r.primaryKPI.isSignificant and r.primaryKPI.deltaPercent > 0
    ]
    improving = [
        (p, r) for p, r in results
        if r.primaryKPI.isSignificant and r.primaryKPI.deltaPercent < 0
    ]
    return worsening, improving


def detect_platform_conflicts(
    results: Sequence[Tuple[PlatformType, DiagnosticResult]],
) -> List[CrossPlatformFinding]:
    """At most one platform_conflict finding: improving and worsening platforms coexist."""
    worsening, improving = partition_by_kpi(results)
    if not worsening or not improving:
        return []

    improving_names = ", ".join(p.value for p, _ in improving)
    worsening_names = ", ".join(p.value for p, _ in worsening)
    total_swing = sum(abs(r.primaryKPI.deltaPercent) for _, r in improving + worsening)

    return [CrossPlatformFinding(
        signal=CrossPlatformSignalType.PLATFORM_CONFLICT,
        severity=Severity.WARNING,
        platforms=[p for p, _ in improving + worsening],
        message=(
            f"Performance is diverging: {improving_names} KPI improving while "
            f"{worsening_names} KPI worsening."
        ),
        recommendation=(
            "Shift incremental budget from the worsening platforms to the improving ones, "
            "then rerun the diagnostic to confirm the trend holds."
        ),
        confidenceScore=min(total_swing / 100, CONFLICT_MAX_CONFIDENCE),
        riskLevel=RiskLevel.MEDIUM,
    )]


def _confidence_tier(worse_delta: float, better_delta: float) -> ConfidenceTier:
    worse_mag, better_mag = abs(worse_delta), abs(better_delta)
    if worse_mag > HIGH_CONFIDENCE_WORSE_PERCENT and better_mag > HIGH_CONFIDENCE_BETTER_PERCENT:
        return ConfidenceTier.HIGH
    if worse_mag + better_mag > MEDIUM_CONFIDENCE_DIVERGENCE_PERCENT:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def detect_budget_reallocations(
    results: Sequence[Tuple[PlatformType, DiagnosticResult]],
) -> List[BudgetRecommendation]:
    """One recommendation per (worsening, improving) primary-KPI pair."""
    worsening, improving = partition_by_kpi(results)

    recommendations: List[BudgetRecommendation] = []
    for worse_platform, worse in worsening:
        for better_platform, better in improving:
            worse_delta = worse.primaryKPI.deltaPercent
            better_delta = better.primaryKPI.deltaPercent
            shift = min(round((abs(worse_delta) + abs(better_delta)) / 4), MAX_SUGGESTED_SHIFT_PERCENT)

            recommendations.append(BudgetRecommendation(
                fromPlatform=worse_platform,
                toPlatform=better_platform,
                reason=(
                    f"{worse_platform.value} {worse.primaryKPI.name} cost worsened {worse_delta:+.1f}% "
                    f"while {better_platform.value} improved {better_delta:+.1f}%"
                ),
                confidence=_confidence_tier(worse_delta, better_delta),
                suggestedShiftPercent=float(shift),
                estimatedKPIImprovement=abs(better_delta) * KPI_IMPROVEMENT_CARRYOVER,
                riskLevel=shift_risk_level(shift),
            ))

    return recommendations


# =============================================================================
# Public API
# =============================================================================


def correlate(platform_results: Sequence[PlatformResult]) -> CorrelationResult:
    """
    Detect cross-platform signals and budget reallocation candidates.

    Args:
        platform_results: One entry per platform, successes and failures mixed

    Returns:
        CorrelationResult. With fewer than two successful platforms there is
        nothing to correlate and both lists are empty.
    """
    results = successful_results(platform_results)
    failed = len(platform_results) - len(results)

    if failed:
        logger.warning(f"Correlating {len(results)} platforms; {failed} failed and were excluded")

    if len(results) < MIN_CORROBORATING_PLATFORMS:
        return CorrelationResult(analyzedPlatformCount=len(results), failedPlatformCount=failed)

    findings = (
        detect_market_wide_cpm_increase(results)
        + detect_halo_effects(results)
        + detect_platform_conflicts(results)
    )
    return CorrelationResult(
        findings=findings,
        budgetRecommendations=detect_budget_reallocations(results),
        analyzedPlatformCount=len(results),
        failedPlatformCount=failed,
    )
