"""
Portfolio Action Generator

Merges per-platform elasticity rankings, correlator findings and budget
recommendations into one globally ranked, risk-scored action list.

Action families:
1. Elasticity: fix the top revenue-losing stage of a platform. Skipped when
   the loss is under the noise floor ($10 by default). Risk is always low:
   nothing is spent or moved.
2. Budget shift: one per BudgetRecommendation. Missing shift percentages and
   revenue estimates are filled from the platforms' own results.
3. Cross-platform: only market_wide_cpm_increase yields an action (medium
   risk); other signal types are recognised and skipped.

Ranking:
    Sort by estimatedRevenueRecovery descending. Two actions within $1 of
    each other are ordered by confidenceScore descending, then by family and
    input order (stable sort). Priorities are 1..N in sorted order. No clock
    or randomness is involved, so identical inputs give identical output.
"""

import functools
import logging
from typing import Dict, List, Optional, Sequence

from funnel_compass.models import (
    BudgetRecommendation,
    ConfidenceTier,
    CrossPlatformFinding,
    CrossPlatformSignalType,
    DiagnosticResult,
    PlatformResult,
    PlatformType,
    PortfolioAction,
    RiskLevel,
    Severity,
)
from funnel_compass.services.correlator import (
    MAX_SUGGESTED_SHIFT_PERCENT,
    shift_risk_level,
    successful_results,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

ELASTICITY_NOISE_FLOOR: float = 10.0

# Revenue estimates within this many dollars are treated as tied
REVENUE_TIE_TOLERANCE: float = 1.0

# Share of the destination platform's elasticity loss a shift is assumed to recover
SHIFT_RECOVERY_SHARE: float = 0.3

# Shift assumed when a recommendation names a platform without a result
FALLBACK_SHIFT_PERCENT: float = 10.0

CONFIDENCE_BY_TIER: Dict[ConfidenceTier, float] = {
    ConfidenceTier.HIGH: 0.85,
    ConfidenceTier.MEDIUM: 0.6,
    ConfidenceTier.LOW: 0.35,
}

DEFAULT_FINDING_CONFIDENCE: float = 0.7


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


# =============================================================================
# Elasticity Actions
# =============================================================================


def elasticity_confidence(result: DiagnosticResult) -> float:
    """
    Confidence that fixing a platform's top loss is worthwhile.

    0.3 base
    + 0.4 x min(|KPI delta| / 50, 1)
    + 0.2 x share of significant stages
    + 0.1 per critical finding (at most 0.3)
    clamped to [0, 1].
    """
    kpi_magnitude = min(abs(result.primaryKPI.deltaPercent) / 50.0, 1.0)

    total = len(result.stageAnalysis)
    significant = sum(1 for s in result.stageAnalysis if s.isSignificant)
    density = significant / total if total else 0.0

    critical = sum(1 for f in result.findings if f.severity == Severity.CRITICAL)
    finding_boost = min(0.1 * critical, 0.3)

    return _clamp(0.3 + 0.4 * kpi_magnitude + 0.2 * density + finding_boost)


def _elasticity_action(
    platform: PlatformType,
    result: DiagnosticResult,
    noise_floor: float,
) -> Optional[PortfolioAction]:
    if result.elasticity is None or not result.elasticity.impactRanking:
        return None

    top = result.elasticity.impactRanking[0]
    revenue_loss = abs(top.estimatedRevenueDelta)
    if revenue_loss < noise_floor:
        return None

    return PortfolioAction(
        priority=1,
        action=(
            f"Fix {top.stage} bottleneck on {platform.value}: "
            f"estimated ${revenue_loss:,.0f}/period revenue loss"
        ),
        platforms=[platform],
        confidenceScore=elasticity_confidence(result),
        estimatedRevenueRecovery=revenue_loss,
        riskLevel=RiskLevel.LOW,
    )


# =============================================================================
# Budget-Shift Actions
# =============================================================================


def estimate_shift_percent(
    recommendation: BudgetRecommendation,
    results: Dict[PlatformType, DiagnosticResult],
) -> float:
    """round((|from KPI delta| + |to KPI delta|) / 4), capped at 30."""
    source = results.get(recommendation.fromPlatform)
    destination = results.get(recommendation.toPlatform)
    if source is None or destination is None:
        return FALLBACK_SHIFT_PERCENT

    divergence = abs(source.primaryKPI.deltaPercent) + abs(destination.primaryKPI.deltaPercent)
    return float(min(round(divergence / 4), MAX_SUGGESTED_SHIFT_PERCENT))


def estimate_shift_recovery(
    recommendation: BudgetRecommendation,
    results: Dict[PlatformType, DiagnosticResult],
) -> float:
    """30% of the destination platform's total elasticity loss, or 0."""
    destination = results.get(recommendation.toPlatform)
    if destination is None or destination.elasticity is None:
        return 0.0
    return abs(destination.elasticity.totalEstimatedRevenueLoss) * SHIFT_RECOVERY_SHARE


def _budget_action(
    recommendation: BudgetRecommendation,
    results: Dict[PlatformType, DiagnosticResult],
) -> PortfolioAction:
    shift = recommendation.suggestedShiftPercent
    if shift is None:
        shift = estimate_shift_percent(recommendation, results)

    recovery = recommendation.estimatedRevenueRecovery
    if recovery is None:
        recovery = estimate_shift_recovery(recommendation, results)

    return PortfolioAction(
        priority=1,
        action=(
            f"Shift {shift:.0f}% budget from {recommendation.fromPlatform.value} to "
            f"{recommendation.toPlatform.value}: {recommendation.reason}"
        ),
        platforms=[recommendation.fromPlatform, recommendation.toPlatform],
        confidenceScore=CONFIDENCE_BY_TIER[recommendation.confidence],
        estimatedRevenueRecovery=recovery,
        riskLevel=shift_risk_level(shift),
        requiredBudgetShiftPercent=shift,
    )


# =============================================================================
# Cross-Platform Finding Actions
# =============================================================================


def _finding_action(finding: CrossPlatformFinding) -> Optional[PortfolioAction]:
    if finding.signal != CrossPlatformSignalType.MARKET_WIDE_CPM_INCREASE:
        # Other signal types have no action yet
        return None

    confidence = finding.confidenceScore
    if confidence is None:
        confidence = DEFAULT_FINDING_CONFIDENCE

    return PortfolioAction(
        priority=1,
        action="Market-wide CPM increase detected: consider reducing spend until costs normalize",
        platforms=list(finding.platforms),
        confidenceScore=confidence,
        estimatedRevenueRecovery=finding.estimatedRevenueRecovery or 0.0,
        riskLevel=RiskLevel.MEDIUM,
    )


# =============================================================================
# Ranking
# =============================================================================


def _compare_actions(a: PortfolioAction, b: PortfolioAction) -> int:
    revenue_diff = b.estimatedRevenueRecovery - a.estimatedRevenueRecovery
    if abs(revenue_diff) > REVENUE_TIE_TOLERANCE:
        return 1 if revenue_diff > 0 else -1
    if a.confidenceScore != b.confidenceScore:
        return 1 if b.confidenceScore > a.confidenceScore else -1
    return 0


def rank_actions(actions: List[PortfolioAction]) -> List[PortfolioAction]:
    """Sort actions and assign contiguous 1-based priorities."""
    ordered = sorted(actions, key=functools.cmp_to_key(_compare_actions))
    return [
        action.model_copy(update={"priority": index})
        for index, action in enumerate(ordered, start=1)
    ]


def generate_portfolio_actions(
    platform_results: Sequence[PlatformResult],
    findings: Sequence[CrossPlatformFinding],
    budget_recommendations: Sequence[BudgetRecommendation],
    noise_floor: float = ELASTICITY_NOISE_FLOOR,
) -> List[PortfolioAction]:
    """
    Build, merge and rank all portfolio actions.

    Args:
        platform_results: Per-platform results; failures are ignored
        findings: Correlator findings
        budget_recommendations: Correlator budget recommendations
        noise_floor: Minimum top-stage dollar loss for an elasticity action

    Returns:
        Actions ranked by estimated revenue recovery, priorities 1..N.
        Empty inputs give an empty list.
    """
    results = dict(successful_results(platform_results))
    actions: List[PortfolioAction] = []

    for platform, result in results.items():
        action = _elasticity_action(platform, result, noise_floor)
        if action is not None:
            actions.append(action)

    for recommendation in budget_recommendations:
        actions.append(_budget_action(recommendation, results))

    for finding in findings:
        action = _finding_action(finding)
        if action is not None:
            actions.append(action)

    ranked = rank_actions(actions)
    logger.debug(f"Ranked {len(ranked)} portfolio actions across {len(results)} platforms")
    return ranked
