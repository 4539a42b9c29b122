"""
Comparison period construction.

A diagnostic compares a current window against the equal-length window
immediately before it. Trailing windows (for account variance history) walk
further back in the same steps.

Example:
    reference_date = 2024-01-14, period_days = 7
    current:  2024-01-08 .. 2024-01-14
    previous: 2024-01-01 .. 2024-01-07
"""

from datetime import date, timedelta
from typing import List

from funnel_compass.models import ComparisonPeriods, TimeRange


def _window_ending(end: date, period_days: int) -> TimeRange:
    return TimeRange(since=end - timedelta(days=period_days - 1), until=end)


def build_comparison_periods(reference_date: date, period_days: int) -> ComparisonPeriods:
    """
    Current and previous periods ending on `reference_date`.

    Raises:
        ValueError: If period_days < 1
    """
    if period_days < 1:
        raise ValueError(f"period_days must be at least 1, got {period_days}")

    current = _window_ending(reference_date, period_days)
    previous = _window_ending(current.since - timedelta(days=1), period_days)
    return ComparisonPeriods(current=current, previous=previous)


def build_trailing_periods(reference_date: date, period_days: int, count: int) -> List[TimeRange]:
    """
    `count` consecutive periods ending on `reference_date`, most recent first.

    Raises:
        ValueError: If period_days < 1
    """
    if period_days < 1:
        raise ValueError(f"period_days must be at least 1, got {period_days}")

    periods: List[TimeRange] = []
    end = reference_date
    for _ in range(max(count, 0)):
        window = _window_ending(end, period_days)
        periods.append(window)
        end = window.since - timedelta(days=1)
    return periods
