"""
Cross-Platform Correlator Test Module

Tests for funnel_compass/services/correlator.py:
- market_wide_cpm_increase detection (corroboration, severity, confidence)
- Budget reallocation pairs, confidence tiers and shift sizing
- Halo effect and platform conflict findings
- Exclusion of failed platforms
"""

import pytest

from funnel_compass.models import (
    ConfidenceTier,
    CrossPlatformSignalType,
    PlatformType,
    RiskLevel,
    Severity,
)
from funnel_compass.services.correlator import (
    correlate,
    detect_halo_effects,
    detect_platform_conflicts,
    platform_cpm_change,
    shift_risk_level,
)


META, GOOGLE, TIKTOK = PlatformType.META, PlatformType.GOOGLE, PlatformType.TIKTOK


# =============================================================================
# Market-Wide CPM
# =============================================================================


class TestMarketWideCPM:

    def test_cpm_from_spend_and_impressions(self, make_diagnostic_result):
        # $1000 / 75k impressions vs $1000 / 100k impressions
        result = make_diagnostic_result(impressions_current=75000.0)
        assert platform_cpm_change(result) == pytest.approx(33.333, rel=1e-3)

    def test_cpm_unavailable_without_impressions(self, make_diagnostic_result):
        result = make_diagnostic_result(impressions_current=0.0)
        assert platform_cpm_change(result) is None

    @pytest.mark.parity
    def test_two_platforms_yield_exactly_one_finding(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, impressions_current=75000.0)),
            success(make_diagnostic_result(GOOGLE, impressions_current=75000.0)),
        ]
        correlation = correlate(results)

        market = [f for f in correlation.findings if f.signal == CrossPlatformSignalType.MARKET_WIDE_CPM_INCREASE]
        assert len(market) == 1
        assert market[0].platforms == [META, GOOGLE]
        assert market[0].severity == Severity.WARNING
        assert market[0].riskLevel == RiskLevel.MEDIUM
        assert market[0].confidenceScore == pytest.approx(0.8)

    def test_single_rising_platform_is_not_market_wide(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, impressions_current=75000.0)),
            success(make_diagnostic_result(GOOGLE)),
        ]
        assert correlate(results).findings == []

    def test_only_rising_platforms_are_named(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, impressions_current=75000.0)),
            success(make_diagnostic_result(GOOGLE)),
            success(make_diagnostic_result(TIKTOK, impressions_current=70000.0)),
        ]
        finding = correlate(results).findings[0]

        assert finding.platforms == [META, TIKTOK]

    def test_critical_when_smallest_increase_exceeds_40(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, impressions_current=60000.0)),
            success(make_diagnostic_result(GOOGLE, impressions_current=65000.0)),
            success(make_diagnostic_result(TIKTOK, impressions_current=50000.0)),
        ]
        finding = correlate(results).findings[0]

        assert finding.severity == Severity.CRITICAL
        assert finding.riskLevel == RiskLevel.HIGH
        assert finding.confidenceScore == pytest.approx(1.0)

    def test_increase_within_noise_is_ignored(self, make_diagnostic_result, success):
        # +3% CPM at $1030 spend is under the 5% spend floor
        results = [
            success(make_diagnostic_result(META, spend_current=1030.0)),
            success(make_diagnostic_result(GOOGLE, spend_current=1030.0)),
        ]
        assert correlate(results).findings == []


# =============================================================================
# Budget Reallocation
# =============================================================================


class TestBudgetReallocation:

    def test_worse_to_better_pair(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, kpi_delta=40.0, kpi_significant=True)),
            success(make_diagnostic_result(GOOGLE, kpi_delta=-25.0, kpi_significant=True)),
        ]
        recs = correlate(results).budgetRecommendations

        assert len(recs) == 1
        rec = recs[0]
        assert rec.fromPlatform == META
        assert rec.toPlatform == GOOGLE
        assert rec.confidence == ConfidenceTier.HIGH
        # round(65 / 4)
        assert rec.suggestedShiftPercent == 16.0
        assert rec.riskLevel == RiskLevel.MEDIUM
        assert rec.estimatedKPIImprovement == pytest.approx(12.5)

    def test_serializes_with_from_and_to(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, kpi_delta=40.0, kpi_significant=True)),
            success(make_diagnostic_result(GOOGLE, kpi_delta=-25.0, kpi_significant=True)),
        ]
        payload = correlate(results).budgetRecommendations[0].model_dump(by_alias=True, mode="json")

        assert payload["from"] == "meta"
        assert payload["to"] == "google"

    def test_one_recommendation_per_pair(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, kpi_delta=20.0, kpi_significant=True)),
            success(make_diagnostic_result(TIKTOK, kpi_delta=15.0, kpi_significant=True)),
            success(make_diagnostic_result(GOOGLE, kpi_delta=-10.0, kpi_significant=True)),
        ]
        recs = correlate(results).budgetRecommendations

        assert [(r.fromPlatform, r.toPlatform) for r in recs] == [(META, GOOGLE), (TIKTOK, GOOGLE)]
        assert recs[0].confidence == ConfidenceTier.MEDIUM
        assert recs[1].confidence == ConfidenceTier.LOW

    def test_shift_is_capped(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, kpi_delta=150.0, kpi_significant=True)),
            success(make_diagnostic_result(GOOGLE, kpi_delta=-60.0, kpi_significant=True)),
        ]
        rec = correlate(results).budgetRecommendations[0]

        assert rec.suggestedShiftPercent == 30.0
        assert rec.riskLevel == RiskLevel.MEDIUM

    def test_insignificant_changes_are_ignored(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, kpi_delta=40.0, kpi_significant=False)),
            success(make_diagnostic_result(GOOGLE, kpi_delta=-25.0, kpi_significant=True)),
        ]
        assert correlate(results).budgetRecommendations == []


# =============================================================================
# Halo Effects
# =============================================================================


class TestHaloEffects:

    def test_spend_growth_with_cheaper_conversions_elsewhere(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, spend_current=1300.0)),
            success(make_diagnostic_result(GOOGLE, kpi_delta=-25.0)),
        ]
        findings = correlate(results).findings

        assert [f.signal for f in findings] == [CrossPlatformSignalType.HALO_EFFECT]
        halo = findings[0]
        assert halo.platforms == [META, GOOGLE]
        assert halo.severity == Severity.INFO
        assert halo.riskLevel == RiskLevel.LOW
        # 30 x 25 / 2000
        assert halo.confidenceScore == pytest.approx(0.375)

    def test_confidence_is_capped(self, make_diagnostic_result):
        results = [
            (META, make_diagnostic_result(META, spend_current=2000.0)),
            (GOOGLE, make_diagnostic_result(GOOGLE, kpi_delta=-50.0)),
        ]
        assert detect_halo_effects(results)[0].confidenceScore == pytest.approx(0.8)

    def test_small_kpi_improvement_is_not_a_halo(self, make_diagnostic_result):
        results = [
            (META, make_diagnostic_result(META, spend_current=1300.0)),
            (GOOGLE, make_diagnostic_result(GOOGLE, kpi_delta=-5.0)),
        ]
        assert detect_halo_effects(results) == []

    def test_platform_is_never_its_own_beneficiary(self, make_diagnostic_result):
        results = [
            (META, make_diagnostic_result(META, spend_current=1300.0, kpi_delta=-25.0)),
            (GOOGLE, make_diagnostic_result(GOOGLE)),
        ]
        assert detect_halo_effects(results) == []


# =============================================================================
# Platform Conflicts
# =============================================================================


class TestPlatformConflicts:

    def test_one_conflict_alongside_recommendations(self, make_diagnostic_result, success):
        results = [
            success(make_diagnostic_result(META, kpi_delta=40.0, kpi_significant=True)),
            success(make_diagnostic_result(GOOGLE, kpi_delta=-25.0, kpi_significant=True)),
        ]
        correlation = correlate(results)

        assert len(correlation.budgetRecommendations) == 1
        assert [f.signal for f in correlation.findings] == [CrossPlatformSignalType.PLATFORM_CONFLICT]
        conflict = correlation.findings[0]
        assert conflict.platforms == [GOOGLE, META]
        assert conflict.severity == Severity.WARNING
        assert conflict.riskLevel == RiskLevel.MEDIUM
        # (25 + 40) / 100
        assert conflict.confidenceScore == pytest.approx(0.65)

    def test_confidence_is_capped(self, make_diagnostic_result):
        results = [
            (META, make_diagnostic_result(META, kpi_delta=150.0, kpi_significant=True)),
            (GOOGLE, make_diagnostic_result(GOOGLE, kpi_delta=-60.0, kpi_significant=True)),
        ]
        assert detect_platform_conflicts(results)[0].confidenceScore == pytest.approx(0.9)

    def test_no_conflict_without_both_directions(self, make_diagnostic_result):
        results = [
            (META, make_diagnostic_result(META, kpi_delta=-20.0, kpi_significant=True)),
            (GOOGLE, make_diagnostic_result(GOOGLE, kpi_delta=-25.0, kpi_significant=True)),
        ]
        assert detect_platform_conflicts(results) == []


# =============================================================================
# Failures and Risk
# =============================================================================


class TestFailedPlatforms:

    def test_failures_are_counted_and_excluded(self, make_diagnostic_result, success, failure):
        results = [
            success(make_diagnostic_result(META, impressions_current=75000.0)),
            failure(GOOGLE),
        ]
        correlation = correlate(results)

        assert correlation.analyzedPlatformCount == 1
        assert correlation.failedPlatformCount == 1
        assert correlation.findings == []
        assert correlation.budgetRecommendations == []

    def test_empty_portfolio(self):
        correlation = correlate([])
        assert correlation.analyzedPlatformCount == 0
        assert correlation.findings == []


class TestShiftRiskLevel:

    @pytest.mark.parametrize(
        "shift, expected",
        [(35.0, RiskLevel.HIGH), (30.0, RiskLevel.MEDIUM), (15.0, RiskLevel.MEDIUM), (10.0, RiskLevel.LOW), (5.0, RiskLevel.LOW)],
    )
    def test_bands(self, shift, expected):
        assert shift_risk_level(shift) == expected
