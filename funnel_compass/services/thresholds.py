"""
Threshold Resolver - one effective variance per metric.

Combines three variance sources, in priority order:

1. Account-specific variance: coefficient of variation of the metric over at
   least `min_history_periods` trailing periods of the account's own history.
2. Vertical benchmark default: `benchmarks.benchmarks[metric].normalVariancePercent`
   when account history is insufficient.
3. Seasonality: the chosen variance is multiplied by the active seasonal
   event's multiplier when the comparison window overlaps one. CPA-family
   metrics use the event's CPA multiplier; every other metric uses the CPM
   multiplier.

The resolved value is what the Significance Engine receives as
`benchmark_variance`. Account history is caller-supplied and read-only.
"""

import logging
from typing import Optional

import numpy as np

from funnel_compass.models import AccountHistory, VerticalBenchmarks
from funnel_compass.services.seasonality import DateLike, SeasonalEvent, get_active_seasonal_event

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Variance used when neither history nor benchmark covers a metric
DEFAULT_VARIANCE_PERCENT: float = 15.0

# Trailing periods required before account history overrides the benchmark
MIN_HISTORY_PERIODS: int = 4

_CPA_FAMILY = {"cpa", "cpl", "cost_per_conversion", "cost_per_result"}


def _is_cpa_family(metric: str) -> bool:
    return metric in _CPA_FAMILY or metric.startswith("cost_per")


# =============================================================================
# Account Variance
# =============================================================================


def account_variance(
    metric: str,
    history: AccountHistory,
    min_history_periods: int = MIN_HISTORY_PERIODS,
) -> Optional[float]:
    """
    Account-specific normal variance for a metric, in percent.

    Uses the coefficient of variation (population std dev / mean * 100).

    Args:
        metric: Metric key in `history.weeklyValues`
        history: Trailing values, most recent first
        min_history_periods: Minimum number of values required

    Returns:
        Variance percent, or None if the metric has too little history or a
        zero mean.
    """
    values = history.weeklyValues.get(metric)
    if not values or len(values) < min_history_periods:
        return None

    arr = np.asarray(values, dtype=float)
    avg = float(np.mean(arr))
    if avg == 0:
        return None

    return float(np.std(arr, ddof=0)) / abs(avg) * 100.0


def seasonal_multiplier_for(
    metric: str,
    event: Optional[SeasonalEvent],
    acquisition_cost: bool = False,
) -> float:
    """
    Multiplier the seasonal event applies to this metric's variance.

    `acquisition_cost` forces the CPA multiplier for cost metrics whose key
    does not look like one (Meta keys per-action costs by the action name).
    """
    if event is None:
        return 1.0
    if acquisition_cost or _is_cpa_family(metric):
        return event.cpa_threshold_multiplier
    return event.cpm_threshold_multiplier


# =============================================================================
# Resolution
# =============================================================================


def resolve_variance(
    metric: str,
    account_history: Optional[AccountHistory],
    period_start: DateLike,
    period_end: DateLike,
    benchmarks: Optional[VerticalBenchmarks],
    min_history_periods: int = MIN_HISTORY_PERIODS,
    acquisition_cost: bool = False,
) -> Optional[float]:
    """
    Seasonally adjusted variance from history or benchmark, or None.

    Returns None only when neither account history nor the benchmark table
    covers the metric; callers may then fall back to the spend heuristic.
    """
    base: Optional[float] = None

    if account_history is not None:
        base = account_variance(metric, account_history, min_history_periods)

    if base is None and benchmarks is not None:
        benchmark = benchmarks.benchmarks.get(metric)
        if benchmark is not None:
            base = benchmark.normalVariancePercent

    if base is None:
        return None

    event = get_active_seasonal_event(period_start, period_end)
    return base * seasonal_multiplier_for(metric, event, acquisition_cost)


def get_effective_variance(
    metric: str,
    account_history: Optional[AccountHistory],
    period_start: DateLike,
    period_end: DateLike,
    benchmarks: Optional[VerticalBenchmarks],
    default_variance: float = DEFAULT_VARIANCE_PERCENT,
    min_history_periods: int = MIN_HISTORY_PERIODS,
    acquisition_cost: bool = False,
) -> float:
    """
    Effective variance threshold for a metric, in percent.

    Args:
        metric: Metric key (stage metric or cost metric)
        account_history: Optional trailing history for the account
        period_start: First day of the comparison window
        period_end: Last day of the comparison window
        benchmarks: Vertical benchmark table (may be None)
        default_variance: Used when neither source covers the metric
        min_history_periods: History length required to prefer the account
        acquisition_cost: Apply the CPA seasonal multiplier regardless of name

    Returns:
        Account variance if available, else the benchmark, else
        `default_variance`, multiplied by any active seasonal multiplier.

    Example:
        >>> get_effective_variance("impressions", None, "2024-11-25", "2024-12-01", commerce)
        36.0  # 20% benchmark x 1.8 Black Friday multiplier
    """
    resolved = resolve_variance(
        metric,
        account_history,
        period_start,
        period_end,
        benchmarks,
        min_history_periods,
        acquisition_cost,
    )
    if resolved is not None:
        return resolved

    logger.debug(f"No variance source for metric '{metric}', using default {default_variance}%")
    event = get_active_seasonal_event(period_start, period_end)
    return default_variance * seasonal_multiplier_for(metric, event, acquisition_cost)
