"""
Advisor Test Module

Tests for the reference advisors in funnel_compass/services/advisors.py.
Advisors are called directly with hand-built snapshots and drop-offs; the
funnel walker integration is covered in test_funnel_walker.py.
"""

import pytest

from funnel_compass.models import FunnelDropoff, PrimaryKPISummary, Severity, StageDiagnostic
from funnel_compass.services.advisors import (
    auction_competition_advisor,
    build_summary_findings,
    checkout_friction_advisor,
    creative_fatigue_advisor,
    form_conversion_advisor,
    leadgen_creative_fatigue_advisor,
)


def _dropoff(from_stage, to_stage, previous_rate, current_rate):
    delta = (current_rate - previous_rate) / previous_rate * 100 if previous_rate else 0.0
    return FunnelDropoff(
        fromStage=from_stage,
        toStage=to_stage,
        currentRate=current_rate,
        previousRate=previous_rate,
        deltaPercent=delta,
    )


@pytest.fixture
def snapshots(make_snapshot):
    """Factory for a (current, previous) pair with the given topLevel metrics."""

    def _make(current_top, previous_top):
        return (
            make_snapshot(current=True, top_level=current_top),
            make_snapshot(current=False, top_level=previous_top),
        )

    return _make


# =============================================================================
# Creative Fatigue
# =============================================================================


class TestCreativeFatigue:

    def test_ctr_collapse_with_flat_cpm_is_critical(self, snapshots):
        current, previous = snapshots({"ctr": 1.0, "cpm": 10.0}, {"ctr": 1.5, "cpm": 10.0})
        findings = creative_fatigue_advisor([], [], current, previous)

        assert len(findings) == 1
        assert findings[0].severity == Severity.CRITICAL
        assert findings[0].stage == "click"
        assert findings[0].recommendation

    def test_moderate_ctr_drop_is_warning(self, snapshots):
        current, previous = snapshots({"ctr": 1.2, "cpm": 10.0}, {"ctr": 1.5, "cpm": 10.0})
        findings = creative_fatigue_advisor([], [], current, previous)

        assert [f.severity for f in findings] == [Severity.WARNING]

    def test_falling_cpm_explains_ctr_drop(self, snapshots):
        current, previous = snapshots({"ctr": 1.0, "cpm": 8.0}, {"ctr": 1.5, "cpm": 10.0})
        assert creative_fatigue_advisor([], [], current, previous) == []

    def test_unreported_ctr_is_not_zero(self, snapshots):
        current, previous = snapshots({"cpm": 10.0}, {"ctr": 1.5, "cpm": 10.0})
        assert creative_fatigue_advisor([], [], current, previous) == []

    def test_zero_previous_ctr(self, snapshots):
        current, previous = snapshots({"ctr": 1.0}, {"ctr": 0.0})
        assert creative_fatigue_advisor([], [], current, previous) == []

    def test_leadgen_wording(self, snapshots):
        current, previous = snapshots({"ctr": 1.0, "cpm": 10.0}, {"ctr": 1.5, "cpm": 10.0})
        findings = leadgen_creative_fatigue_advisor([], [], current, previous)

        assert "value propositions" in findings[0].recommendation


# =============================================================================
# Auction Competition
# =============================================================================


class TestAuctionCompetition:

    def test_warning_above_25_percent(self, snapshots):
        current, previous = snapshots({"cpm": 13.0}, {"cpm": 10.0})
        findings = auction_competition_advisor([], [], current, previous)

        assert [f.severity for f in findings] == [Severity.WARNING]
        assert findings[0].stage == "awareness"

    def test_critical_above_50_percent(self, snapshots):
        current, previous = snapshots({"cpm": 16.0}, {"cpm": 10.0})
        findings = auction_competition_advisor([], [], current, previous)

        assert findings[0].severity == Severity.CRITICAL

    def test_small_increase_is_ignored(self, snapshots):
        current, previous = snapshots({"cpm": 12.0}, {"cpm": 10.0})
        assert auction_competition_advisor([], [], current, previous) == []

    def test_missing_cpm(self, snapshots):
        current, previous = snapshots({}, {"cpm": 10.0})
        assert auction_competition_advisor([], [], current, previous) == []


# =============================================================================
# Vertical Advisors
# =============================================================================


class TestCheckoutFriction:

    def test_checkout_collapse(self, snapshots):
        current, previous = snapshots({}, {})
        dropoffs = [_dropoff("add_to_cart", "purchase", 0.30, 0.18)]
        findings = checkout_friction_advisor([], dropoffs, current, previous)

        # -40% is beyond the -35% critical line; 18% is still a healthy rate
        assert [f.severity for f in findings] == [Severity.CRITICAL]

    def test_low_rate_is_informational(self, snapshots):
        current, previous = snapshots({}, {})
        dropoffs = [_dropoff("add_to_cart", "purchase", 0.11, 0.10)]
        findings = checkout_friction_advisor([], dropoffs, current, previous)

        assert [f.severity for f in findings] == [Severity.INFO]

    def test_no_cart_stage(self, snapshots):
        current, previous = snapshots({}, {})
        dropoffs = [_dropoff("click", "conversion", 0.05, 0.01)]
        assert checkout_friction_advisor([], dropoffs, current, previous) == []


class TestFormConversion:

    def test_form_drop_is_warning(self, snapshots):
        current, previous = snapshots({}, {})
        dropoffs = [_dropoff("click", "lead", 0.20, 0.15)]
        findings = form_conversion_advisor([], dropoffs, current, previous)

        assert [f.severity for f in findings] == [Severity.WARNING]
        assert findings[0].stage == "click -> lead"

    def test_form_collapse_is_critical_and_low(self, snapshots):
        current, previous = snapshots({}, {})
        dropoffs = [_dropoff("click", "lead", 0.20, 0.05)]
        findings = form_conversion_advisor([], dropoffs, current, previous)

        assert [f.severity for f in findings] == [Severity.CRITICAL, Severity.INFO]


# =============================================================================
# Summary Findings
# =============================================================================


class TestSummaryFindings:

    def _kpi(self, delta, severity):
        return PrimaryKPISummary(
            name="purchase",
            metric="purchase",
            current=20.0 * (1 + delta / 100),
            previous=20.0,
            deltaPercent=delta,
            isSignificant=severity != Severity.HEALTHY,
            severity=severity,
        )

    def test_kpi_verdict_always_present(self):
        findings = build_summary_findings(self._kpi(0.0, Severity.HEALTHY), None, [], [])

        assert len(findings) == 1
        assert findings[0].severity == Severity.HEALTHY
        assert "is stable at $20.00" in findings[0].message

    def test_cost_increase_verdict(self):
        findings = build_summary_findings(self._kpi(50.0, Severity.CRITICAL), None, [], [])
        assert "increased to $30.00 (+50.0% WoW)" in findings[0].message

    def test_dropoff_thresholds_are_configurable(self):
        dropoffs = [_dropoff("click", "add_to_cart", 0.10, 0.085)]
        kpi = self._kpi(0.0, Severity.HEALTHY)

        assert len(build_summary_findings(kpi, None, [], dropoffs)) == 1
        strict = build_summary_findings(kpi, None, [], dropoffs, dropoff_warning_percent=-10.0)
        assert [f.stage for f in strict] == ["purchase", "click -> add_to_cart"]
        assert strict[1].severity == Severity.WARNING

    def test_bottleneck_without_economic_impact(self):
        bottleneck = StageDiagnostic(
            stageName="click",
            metric="clicks",
            currentValue=800,
            previousValue=1000,
            delta=-200,
            deltaPercent=-20.0,
            isSignificant=True,
            severity=Severity.CRITICAL,
        )
        findings = build_summary_findings(self._kpi(0.0, Severity.HEALTHY), bottleneck, [bottleneck], [])

        assert findings[1].stage == "click"
        assert "revenue" not in findings[1].message
