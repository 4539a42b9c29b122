"""
Significance Engine Test Module

Tests for funnel_compass/services/significance.py: percentage change with its
zero sentinels, the spend-based minimum detectable change, variance-based
significance and z-scores.
"""

import math

import pytest

from funnel_compass.services.significance import (
    MIN_DETECTABLE_CEILING,
    MIN_DETECTABLE_FLOOR,
    is_significant_change,
    minimum_detectable_change,
    percent_change,
    z_score,
)


# =============================================================================
# percent_change
# =============================================================================


@pytest.mark.parity
class TestPercentChange:
    """Sentinel behaviour around a zero previous value."""

    @pytest.mark.parametrize("value", [0, 1, 50, -7.5, 1e9])
    def test_no_change_is_zero(self, value):
        assert percent_change(value, value) == 0.0

    def test_both_zero(self):
        assert percent_change(0, 0) == 0.0

    def test_positive_from_zero(self):
        assert percent_change(5, 0) == 100.0

    def test_negative_from_zero(self):
        assert percent_change(-5, 0) == -100.0

    def test_regular_change(self):
        assert percent_change(60, 50) == pytest.approx(20.0)
        assert percent_change(25, 50) == pytest.approx(-50.0)

    def test_result_is_always_finite(self):
        for current, previous in [(1e-300, 0), (0, 1e-300), (-1e-300, 0)]:
            assert math.isfinite(percent_change(current, previous))


# =============================================================================
# Significance
# =============================================================================


class TestMinimumDetectableChange:
    """Square-root law clamped to [5, 50]."""

    def test_square_root_law(self):
        assert minimum_detectable_change(100) == pytest.approx(10.0)
        assert minimum_detectable_change(400) == pytest.approx(5.0)

    def test_floor_for_large_spend(self):
        assert minimum_detectable_change(10000) == MIN_DETECTABLE_FLOOR

    def test_ceiling_for_small_spend(self):
        assert minimum_detectable_change(1) == MIN_DETECTABLE_CEILING

    def test_zero_spend_is_ceiling(self):
        assert minimum_detectable_change(0) == MIN_DETECTABLE_CEILING


class TestIsSignificantChange:

    @pytest.mark.parametrize("delta", [0.0, 5.0, -80.0, 1000.0])
    @pytest.mark.parametrize("variance", [None, 0.0, 10.0])
    def test_zero_spend_is_never_significant(self, delta, variance):
        assert is_significant_change(delta, 0, variance) is False

    def test_negative_spend_is_never_significant(self):
        assert is_significant_change(500.0, -10.0) is False

    def test_spend_heuristic(self):
        # $100 spend -> 10% minimum detectable change
        assert is_significant_change(12.0, 100.0) is True
        assert is_significant_change(-12.0, 100.0) is True
        assert is_significant_change(8.0, 100.0) is False

    def test_variance_needs_twice_the_normal_swing(self):
        assert is_significant_change(25.0, 5000.0, benchmark_variance=10.0) is True
        assert is_significant_change(20.0, 5000.0, benchmark_variance=10.0) is False
        assert is_significant_change(15.0, 5000.0, benchmark_variance=10.0) is False

    def test_variance_overrides_spend_heuristic(self):
        # 6% clears the $10k spend floor of 5% but not 2 x 15%
        assert is_significant_change(6.0, 10000.0) is True
        assert is_significant_change(6.0, 10000.0, benchmark_variance=15.0) is False


# =============================================================================
# z_score
# =============================================================================


class TestZScore:

    @pytest.mark.parametrize("history", [[], [1.0], [1.0, 2.0]])
    def test_short_history_is_none(self, history):
        assert z_score(5.0, history) is None

    def test_population_standard_deviation(self):
        # mean 2, population std sqrt(2/3)
        assert z_score(3.0, [1.0, 2.0, 3.0]) == pytest.approx(1.0 / math.sqrt(2.0 / 3.0))
        assert z_score(2.0, [1.0, 2.0, 3.0]) == pytest.approx(0.0)

    def test_constant_history(self):
        assert z_score(5.0, [5.0, 5.0, 5.0]) == 0.0
        assert z_score(6.0, [5.0, 5.0, 5.0]) is None
