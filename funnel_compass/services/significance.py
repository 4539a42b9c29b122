"""
Significance Engine - noise vs signal for period-over-period changes.

Decides whether an observed percentage change is meaningful given either a
variance threshold (account history or vertical benchmark) or, when none is
available, the spend volume behind the change.

Spend Heuristic:
    Higher spend implies a larger sample, so smaller relative swings are
    meaningful. The minimum detectable change follows a square-root law:

        min_detectable = clamp(100 / sqrt(spend), 5, 50)

    At $100 spend a 10% change is the minimum signal; at $10,000 the floor
    of 5% applies; below $4 the 50% ceiling applies.

Sentinels:
    Every function returns a finite value or a documented sentinel
    (0, False, None). Infinity and NaN never leave this module.

Usage:
    from funnel_compass.services.significance import percent_change, is_significant_change

    delta = percent_change(60, 50)                 # 20.0
    is_significant_change(delta, spend=1200.0)     # True (threshold ~2.9 -> 5)
"""

import math
from typing import List, Optional

import numpy as np


# =============================================================================
# Constants
# =============================================================================

# Bounds of the spend-based minimum detectable change, in percent
MIN_DETECTABLE_FLOOR: float = 5.0
MIN_DETECTABLE_CEILING: float = 50.0

# A change is significant when it exceeds this multiple of the normal variance
VARIANCE_SIGNIFICANCE_MULTIPLIER: float = 2.0

# Fewer history points than this and a z-score is undefined
MIN_ZSCORE_HISTORY: int = 3


# =============================================================================
# Percentage Change
# =============================================================================


def percent_change(current: float, previous: float) -> float:
    """
    Percentage change from `previous` to `current`.

    Args:
        current: Current-period value
        previous: Previous-period value

    Returns:
        0.0 when both are zero; +100.0 / -100.0 (sign of `current`) when only
        `previous` is zero; otherwise (current - previous) / previous * 100.

    Example:
        >>> percent_change(5, 0)
        100.0
        >>> percent_change(0, 0)
        0.0
    """
    if previous == 0:
        if current == 0:
            return 0.0
        return 100.0 if current > 0 else -100.0
    return (current - previous) / previous * 100.0


# =============================================================================
# Significance
# =============================================================================


def minimum_detectable_change(spend: float) -> float:
    """
    Spend-based minimum detectable change in percent.

    Returns the ceiling for non-positive spend so callers banding severities
    never divide by zero.
    """
    if spend <= 0:
        return MIN_DETECTABLE_CEILING
    return max(MIN_DETECTABLE_FLOOR, min(MIN_DETECTABLE_CEILING, 100.0 / math.sqrt(spend)))


def is_significant_change(
    delta_percent: float,
    spend: float,
    benchmark_variance: Optional[float] = None,
) -> bool:
    """
    Decide whether a percentage change is signal rather than noise.

    Args:
        delta_percent: Observed change in percent
        spend: Spend behind the observation; no spend means no signal
        benchmark_variance: Normal variance in percent. When supplied the
            change must exceed twice this value.

    Returns:
        True if the change is meaningful, False otherwise (always False for
        spend <= 0).
    """
    if spend <= 0:
        return False

    if benchmark_variance is not None:
        return abs(delta_percent) > VARIANCE_SIGNIFICANCE_MULTIPLIER * benchmark_variance

    return abs(delta_percent) > minimum_detectable_change(spend)


def z_score(value: float, history: List[float]) -> Optional[float]:
    """
    Z-score of `value` against `history` (mean and population std dev).

    Args:
        value: Observation to score
        history: Historical observations of the same metric

    Returns:
        The z-score; None with fewer than 3 history points, or when history
        has zero spread and `value` differs from its mean. A value equal to a
        constant history scores 0.0.
    """
    if len(history) < MIN_ZSCORE_HISTORY:
        return None

    values = np.asarray(history, dtype=float)
    avg = float(np.mean(values))
    std = float(np.std(values, ddof=0))

    if std == 0:
        return 0.0 if value == avg else None
    return (value - avg) / std
