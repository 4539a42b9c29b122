"""
Seasonality Calendar - calendar-anchored demand spikes.

During high-competition windows (Black Friday, Prime Day, the December
holidays...) auction costs rise for everyone, and a CPM or CPA increase that
would normally be alarming is expected. This module holds a static,
process-wide table of such windows and answers which one (if any) overlaps a
comparison period.

Windows are month-day ranges, not tied to a year. Dates are projected to a
day-of-year on a non-leap calendar before comparison.

Known Limitation:
    A requested range that straddles the year boundary (e.g. Dec 26 - Jan 5)
    is treated as overlapping every event rather than computed precisely.
    This errs towards relaxing thresholds around New Year.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple, Union

DateLike = Union[date, str]


@dataclass(frozen=True)
class SeasonalEvent:
    """
    A named seasonal window and its threshold multipliers.

    Attributes:
        name: Human-readable event name
        start_mmdd: First day of the window, "MM-DD", inclusive
        end_mmdd: Last day of the window, "MM-DD", inclusive
        cpm_threshold_multiplier: Allowed CPM variance multiplier (1.5 = +50%)
        cpa_threshold_multiplier: Allowed CPA variance multiplier
    """
    name: str
    start_mmdd: str
    end_mmdd: str
    cpm_threshold_multiplier: float
    cpa_threshold_multiplier: float


# =============================================================================
# Calendar
# =============================================================================

# US/global e-commerce calendar; dates are approximate
SEASONAL_EVENTS: Tuple[SeasonalEvent, ...] = (
    SeasonalEvent("Valentine's Day", "02-07", "02-14", 1.2, 1.15),
    SeasonalEvent("Easter / Spring Sale", "03-20", "04-05", 1.15, 1.1),
    SeasonalEvent("Mother's Day", "05-01", "05-12", 1.2, 1.15),
    SeasonalEvent("Prime Day", "07-10", "07-17", 1.4, 1.25),
    SeasonalEvent("Back to School", "08-01", "08-31", 1.2, 1.1),
    SeasonalEvent("Singles' Day (11.11)", "11-08", "11-12", 1.3, 1.2),
    SeasonalEvent("Black Friday / Cyber Monday", "11-20", "12-02", 1.8, 1.4),
    SeasonalEvent("Holiday Season (Dec)", "12-03", "12-26", 1.5, 1.3),
    SeasonalEvent("Year-End Clearance", "12-26", "12-31", 1.3, 1.2),
)

_DAYS_IN_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


# =============================================================================
# Helpers
# =============================================================================


def _to_mmdd(value: DateLike) -> str:
    if isinstance(value, date):
        return value.strftime("%m-%d")
    # "YYYY-MM-DD" -> "MM-DD"
    return date.fromisoformat(value).strftime("%m-%d")


def _mmdd_to_day(mmdd: str) -> int:
    month, day = (int(part) for part in mmdd.split("-"))
    # Feb 29 collapses onto Feb 28
    return sum(_DAYS_IN_MONTH[: month - 1]) + min(day, _DAYS_IN_MONTH[month - 1])


def _ranges_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    a1, a2 = _mmdd_to_day(a_start), _mmdd_to_day(a_end)
    b1, b2 = _mmdd_to_day(b_start), _mmdd_to_day(b_end)

    if a1 <= a2 and b1 <= b2:
        return a1 <= b2 and b1 <= a2

    # Year-boundary wrap: conservative
    return True


# =============================================================================
# Public API
# =============================================================================


def get_active_seasonal_event(
    period_start: DateLike,
    period_end: DateLike,
) -> Optional[SeasonalEvent]:
    """
    Return the highest-CPM-multiplier event overlapping the period.

    Args:
        period_start: First day of the period (date or ISO string)
        period_end: Last day of the period (date or ISO string)

    Returns:
        The overlapping event with the largest CPM multiplier, or None.

    Example:
        >>> get_active_seasonal_event("2024-11-25", "2024-12-01").name
        'Black Friday / Cyber Monday'
    """
    start_mmdd = _to_mmdd(period_start)
    end_mmdd = _to_mmdd(period_end)

    best: Optional[SeasonalEvent] = None
    for event in SEASONAL_EVENTS:
        if not _ranges_overlap(start_mmdd, end_mmdd, event.start_mmdd, event.end_mmdd):
            continue
        if best is None or event.cpm_threshold_multiplier > best.cpm_threshold_multiplier:
            best = event
    return best


def get_seasonal_cpm_multiplier(period_start: DateLike, period_end: DateLike) -> float:
    """CPM threshold multiplier for the period; 1.0 outside any event."""
    event = get_active_seasonal_event(period_start, period_end)
    return event.cpm_threshold_multiplier if event else 1.0


def get_seasonal_cpa_multiplier(period_start: DateLike, period_end: DateLike) -> float:
    """CPA threshold multiplier for the period; 1.0 outside any event."""
    event = get_active_seasonal_event(period_start, period_end)
    return event.cpa_threshold_multiplier if event else 1.0
