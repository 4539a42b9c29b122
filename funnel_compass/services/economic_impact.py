"""
Economic Impact Engine - dollar-denominated funnel elasticity.

Converts percentage-based stage and drop-off deltas into estimated revenue
deltas so bottlenecks can be ranked by financial severity instead of raw
percentages.

Attribution Model:
    - Bottom-of-funnel stages (purchases, conversions): each conversion is
      worth one average order value.
        revenue_delta = conversion_delta x AOV
    - Upper-funnel stages: not every lost impression or click would have
      converted, so the impact is attenuated.
        impressions: x 0.01
        everything else: x 0.10
    - Drop-offs: the change in the transition *rate*, applied to the expected
      conversion volume, is the signal.

The revenue-impact percentage is relative to an inferred previous-period
baseline (previous_value x AOV x attenuation) and is 0 when that baseline
is 0.
"""

from typing import List

from funnel_compass.models import (
    EconomicImpact,
    ElasticityEntry,
    ElasticityRanking,
    FunnelDropoff,
    StageDiagnostic,
)


# =============================================================================
# Constants
# =============================================================================

IMPRESSION_ATTENUATION: float = 0.01
UPPER_FUNNEL_ATTENUATION: float = 0.10


def attenuation_for(metric: str, is_bottom_of_funnel: bool) -> float:
    """Share of a stage's volume change assumed to reach revenue."""
    if is_bottom_of_funnel:
        return 1.0
    if metric == "impressions":
        return IMPRESSION_ATTENUATION
    return UPPER_FUNNEL_ATTENUATION


def _relative_percent(delta: float, baseline: float) -> float:
    if baseline == 0:
        return 0.0
    return delta / abs(baseline) * 100.0


# =============================================================================
# Stage and Drop-off Impact
# =============================================================================


def compute_stage_economic_impact(
    stage: StageDiagnostic,
    average_order_value: float,
    is_bottom_of_funnel: bool,
) -> EconomicImpact:
    """
    Estimated revenue impact of one stage's period-over-period change.

    Args:
        stage: The stage diagnostic (current/previous volume)
        average_order_value: Dollar value of one conversion
        is_bottom_of_funnel: Whether the stage is a conversion stage

    Returns:
        EconomicImpact with the signed revenue delta, the raw volume delta
        and the delta relative to the attenuated previous-period revenue.

    Example:
        60 purchases vs 50 at $50 AOV, bottom of funnel:
        estimatedRevenueDelta = 10 x 50 = 500
    """
    conversion_delta = stage.currentValue - stage.previousValue
    attenuation = attenuation_for(stage.metric, is_bottom_of_funnel)

    estimated_revenue_delta = conversion_delta * average_order_value * attenuation
    previous_revenue = stage.previousValue * average_order_value * attenuation

    return EconomicImpact(
        estimatedRevenueDelta=estimated_revenue_delta,
        conversionDelta=conversion_delta,
        revenueImpactPercent=_relative_percent(estimated_revenue_delta, previous_revenue),
    )


def compute_dropoff_economic_impact(
    dropoff: FunnelDropoff,
    expected_conversions: float,
    average_order_value: float,
) -> EconomicImpact:
    """
    Estimated revenue impact of a change in a stage-to-stage conversion rate.

    Args:
        dropoff: The drop-off between two adjacent stages
        expected_conversions: Flow entering the transition (e.g. previous
            period volume of the `from` stage)
        average_order_value: Dollar value of one conversion

    Returns:
        EconomicImpact where conversionDelta = rate delta x expected volume.
    """
    rate_delta = dropoff.currentRate - dropoff.previousRate
    conversion_delta = rate_delta * expected_conversions
    estimated_revenue_delta = conversion_delta * average_order_value
    previous_revenue = expected_conversions * average_order_value

    return EconomicImpact(
        estimatedRevenueDelta=estimated_revenue_delta,
        conversionDelta=conversion_delta,
        revenueImpactPercent=_relative_percent(estimated_revenue_delta, previous_revenue),
    )


# =============================================================================
# Elasticity Ranking
# =============================================================================


def build_elasticity_ranking(stage_analysis: List[StageDiagnostic]) -> ElasticityRanking:
    """
    Rank significant revenue-losing stages, worst loss first.

    Only stages with an economic impact, a negative revenue delta and a
    significant change are included. An entity with no significant losses
    yields an empty ranking and a zero total: the healthy case.

    Args:
        stage_analysis: Completed stage diagnostics

    Returns:
        ElasticityRanking sorted ascending by estimatedRevenueDelta, with
        totalEstimatedRevenueLoss equal to the sum of the entries.
    """
    losses = [
        s for s in stage_analysis
        if s.economicImpact is not None
        and s.economicImpact.estimatedRevenueDelta < 0
        and s.isSignificant
    ]
    # sorted() is stable, so equal losses keep funnel order
    losses = sorted(losses, key=lambda s: s.economicImpact.estimatedRevenueDelta)

    ranking = [
        ElasticityEntry(
            stage=s.stageName,
            estimatedRevenueDelta=s.economicImpact.estimatedRevenueDelta,
            severity=s.severity,
        )
        for s in losses
    ]

    return ElasticityRanking(
        totalEstimatedRevenueLoss=sum(e.estimatedRevenueDelta for e in ranking),
        impactRanking=ranking,
    )
