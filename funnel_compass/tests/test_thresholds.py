"""
Seasonality and Threshold Resolver Test Module

Tests for funnel_compass/services/seasonality.py and
funnel_compass/services/thresholds.py:
- Active seasonal event lookup and multipliers
- Account variance (coefficient of variation) and its sentinels
- Variance priority: account history > benchmark > default, then seasonality
"""

from datetime import date

import pytest

from funnel_compass.models import AccountHistory, StageBenchmark, VerticalBenchmarks, VerticalType
from funnel_compass.services.seasonality import (
    get_active_seasonal_event,
    get_seasonal_cpa_multiplier,
    get_seasonal_cpm_multiplier,
)
from funnel_compass.services.thresholds import (
    account_variance,
    get_effective_variance,
    resolve_variance,
    seasonal_multiplier_for,
)


@pytest.fixture
def benchmarks() -> VerticalBenchmarks:
    return VerticalBenchmarks(
        vertical=VerticalType.COMMERCE,
        benchmarks={
            "impressions": StageBenchmark(expectedDropoffRate=1.0, normalVariancePercent=20.0),
            "purchase": StageBenchmark(expectedDropoffRate=0.3, normalVariancePercent=10.0),
        },
    )


# =============================================================================
# Seasonality
# =============================================================================


class TestSeasonality:

    def test_black_friday_window(self):
        event = get_active_seasonal_event("2024-11-25", "2024-12-01")
        assert event is not None
        assert event.name == "Black Friday / Cyber Monday"
        assert get_seasonal_cpm_multiplier("2024-11-25", "2024-12-01") == 1.8
        assert get_seasonal_cpa_multiplier("2024-11-25", "2024-12-01") == 1.4

    def test_accepts_date_objects(self):
        event = get_active_seasonal_event(date(2024, 7, 12), date(2024, 7, 14))
        assert event is not None
        assert event.name == "Prime Day"

    def test_quiet_period(self):
        assert get_active_seasonal_event("2024-06-10", "2024-06-16") is None
        assert get_seasonal_cpm_multiplier("2024-06-10", "2024-06-16") == 1.0
        assert get_seasonal_cpa_multiplier("2024-06-10", "2024-06-16") == 1.0

    def test_highest_cpm_multiplier_wins_on_overlap(self):
        # Spans the end of BFCM (1.8) and the start of the December holidays (1.5)
        event = get_active_seasonal_event("2024-11-30", "2024-12-06")
        assert event.name == "Black Friday / Cyber Monday"

    def test_year_boundary_is_conservative(self):
        # Straddling New Year is treated as overlapping every event
        event = get_active_seasonal_event("2024-12-29", "2025-01-04")
        assert event is not None
        assert event.name == "Black Friday / Cyber Monday"


# =============================================================================
# Account Variance
# =============================================================================


class TestAccountVariance:

    def test_coefficient_of_variation(self):
        history = AccountHistory(weeklyValues={"purchase": [40.0, 60.0, 40.0, 60.0]})
        # mean 50, population std 10
        assert account_variance("purchase", history) == pytest.approx(20.0)

    def test_too_little_history(self):
        history = AccountHistory(weeklyValues={"purchase": [40.0, 60.0, 50.0]})
        assert account_variance("purchase", history) is None

    def test_min_history_is_configurable(self):
        history = AccountHistory(weeklyValues={"purchase": [40.0, 60.0]})
        assert account_variance("purchase", history, min_history_periods=2) == pytest.approx(20.0)

    def test_zero_mean(self):
        history = AccountHistory(weeklyValues={"purchase": [0.0, 0.0, 0.0, 0.0]})
        assert account_variance("purchase", history) is None

    def test_missing_metric(self):
        history = AccountHistory(weeklyValues={"clicks": [1.0, 2.0, 3.0, 4.0]})
        assert account_variance("purchase", history) is None


# =============================================================================
# Resolution
# =============================================================================


class TestResolveVariance:

    def test_history_beats_benchmark(self, benchmarks):
        history = AccountHistory(weeklyValues={"purchase": [40.0, 60.0, 40.0, 60.0]})
        assert resolve_variance("purchase", history, "2024-06-10", "2024-06-16", benchmarks) == pytest.approx(20.0)

    def test_benchmark_when_history_is_short(self, benchmarks):
        history = AccountHistory(weeklyValues={"purchase": [40.0, 60.0]})
        assert resolve_variance("purchase", history, "2024-06-10", "2024-06-16", benchmarks) == 10.0

    def test_none_without_any_source(self):
        assert resolve_variance("purchase", None, "2024-06-10", "2024-06-16", None) is None

    def test_seasonal_multiplier_applied(self, benchmarks):
        # 20% benchmark x 1.8 BFCM CPM multiplier
        assert resolve_variance("impressions", None, "2024-11-25", "2024-12-01", benchmarks) == pytest.approx(36.0)

    def test_cpa_family_uses_cpa_multiplier(self):
        history = AccountHistory(weeklyValues={"cpa": [40.0, 60.0, 40.0, 60.0]})
        assert resolve_variance("cpa", history, "2024-11-25", "2024-12-01", None) == pytest.approx(28.0)

    def test_acquisition_cost_flag_forces_cpa_multiplier(self):
        history = AccountHistory(weeklyValues={"purchase": [40.0, 60.0, 40.0, 60.0]})
        value = resolve_variance(
            "purchase", history, "2024-11-25", "2024-12-01", None, acquisition_cost=True
        )
        assert value == pytest.approx(28.0)


class TestEffectiveVariance:

    def test_default_when_nothing_covers_metric(self, benchmarks):
        assert get_effective_variance("reach", None, "2024-06-10", "2024-06-16", benchmarks) == 15.0

    def test_custom_default(self):
        assert get_effective_variance("reach", None, "2024-06-10", "2024-06-16", None, default_variance=12.0) == 12.0

    def test_default_is_seasonally_adjusted(self):
        assert get_effective_variance("reach", None, "2024-11-25", "2024-12-01", None) == pytest.approx(27.0)

    def test_multiplier_outside_events(self):
        assert seasonal_multiplier_for("impressions", None) == 1.0
