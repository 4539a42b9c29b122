"""
Advisor Registry - pluggable finding generators.

An advisor is a plain function with one signature:

    (stage_analysis, dropoffs, current, previous, context) -> List[Finding]

Advisors are side-effect free and are registered in an ordered list per
platform/vertical. The Funnel Walker calls them in list order, concatenates
their findings without de-duplication, and isolates any advisor that raises.

Shipped advisors:
- Summary findings (always first): primary KPI verdict, bottleneck, worsened
  drop-offs, large impression swings
- Creative fatigue: CTR falls while CPM holds (all platforms)
- Auction competition: CPM inflation (all platforms)
- Checkout friction: add_to_cart -> purchase rate (commerce on Meta/TikTok)
- Form conversion: click -> lead rate (leadgen)

Leadgen gets its own wording for the shared advisors; the detection rules are
identical.
"""

from typing import Callable, List, Optional

from funnel_compass.models import (
    DiagnosticContext,
    Finding,
    FunnelDropoff,
    MetricSnapshot,
    PlatformType,
    PrimaryKPISummary,
    Severity,
    StageDiagnostic,
    VerticalType,
)
from funnel_compass.services.significance import percent_change

FindingAdvisor = Callable[
    [
        List[StageDiagnostic],
        List[FunnelDropoff],
        MetricSnapshot,
        MetricSnapshot,
        Optional[DiagnosticContext],
    ],
    List[Finding],
]


# =============================================================================
# Constants
# =============================================================================

DROPOFF_WARNING_PERCENT: float = -20.0
DROPOFF_CRITICAL_PERCENT: float = -40.0

# Impression swings larger than this affect every downstream stage
IMPRESSION_SWING_PERCENT: float = 20.0

CTR_FATIGUE_WARNING_PERCENT: float = -15.0
CTR_FATIGUE_CRITICAL_PERCENT: float = -30.0
# CPM must not have fallen by more than this for a CTR drop to read as fatigue
CPM_STABLE_FLOOR_PERCENT: float = -5.0

CPM_WARNING_PERCENT: float = 25.0
CPM_CRITICAL_PERCENT: float = 50.0

CHECKOUT_WARNING_PERCENT: float = -20.0
CHECKOUT_CRITICAL_PERCENT: float = -35.0
CHECKOUT_MIN_HEALTHY_RATE: float = 0.15

FORM_WARNING_PERCENT: float = -20.0
FORM_CRITICAL_PERCENT: float = -40.0
FORM_MIN_HEALTHY_RATE: float = 0.08


def _pct(rate: float, digits: int = 1) -> str:
    return f"{rate * 100:.{digits}f}%"


def _find_dropoff(dropoffs: List[FunnelDropoff], from_stage: str, to_stage: str) -> Optional[FunnelDropoff]:
    for dropoff in dropoffs:
        if dropoff.fromStage == from_stage and dropoff.toStage == to_stage:
            return dropoff
    return None


# =============================================================================
# Summary Findings
# =============================================================================


def build_summary_findings(
    primary_kpi: PrimaryKPISummary,
    bottleneck: Optional[StageDiagnostic],
    stage_analysis: List[StageDiagnostic],
    dropoffs: List[FunnelDropoff],
    dropoff_warning_percent: float = DROPOFF_WARNING_PERCENT,
    dropoff_critical_percent: float = DROPOFF_CRITICAL_PERCENT,
) -> List[Finding]:
    """
    Vertical-agnostic findings emitted ahead of the registered advisors.

    Always yields the primary KPI verdict (healthy when stable), then the
    bottleneck if one was picked, then every drop-off that worsened beyond
    `dropoff_warning_percent`, then an impression-swing note.
    """
    findings: List[Finding] = []

    if primary_kpi.severity == Severity.HEALTHY:
        verdict = "is stable at"
    elif primary_kpi.deltaPercent > 0:
        verdict = "increased to"
    else:
        verdict = "improved to"
    findings.append(Finding(
        severity=primary_kpi.severity,
        stage=primary_kpi.name,
        message=(
            f"{primary_kpi.name} cost {verdict} ${primary_kpi.current:.2f} "
            f"({primary_kpi.deltaPercent:+.1f}% WoW)."
        ),
    ))

    if bottleneck is not None:
        message = (
            f"Largest loss is at the {bottleneck.stageName} stage: "
            f"{bottleneck.deltaPercent:.1f}% WoW "
            f"({bottleneck.previousValue:g} -> {bottleneck.currentValue:g})"
        )
        if bottleneck.economicImpact is not None:
            message += f", about ${abs(bottleneck.economicImpact.estimatedRevenueDelta):,.0f} in revenue"
        findings.append(Finding(
            severity=bottleneck.severity,
            stage=bottleneck.stageName,
            message=message + ".",
        ))

    for dropoff in dropoffs:
        if not dropoff.is_worsened(dropoff_warning_percent):
            continue
        severity = Severity.CRITICAL if dropoff.deltaPercent < dropoff_critical_percent else Severity.WARNING
        findings.append(Finding(
            severity=severity,
            stage=f"{dropoff.fromStage} -> {dropoff.toStage}",
            message=(
                f"Conversion rate from {dropoff.fromStage} to {dropoff.toStage} dropped "
                f"{dropoff.deltaPercent:.1f}% ({_pct(dropoff.previousRate, 2)} -> {_pct(dropoff.currentRate, 2)})."
            ),
        ))

    impressions = next((s for s in stage_analysis if s.metric == "impressions"), None)
    if impressions is not None and abs(impressions.deltaPercent) > IMPRESSION_SWING_PERCENT:
        findings.append(Finding(
            severity=Severity.INFO,
            stage="awareness",
            message=(
                f"Impression volume shifted {impressions.deltaPercent:+.1f}% WoW. "
                f"Large volume swings affect all downstream metrics."
            ),
        ))

    return findings


# =============================================================================
# Shared Advisors (all platforms)
# =============================================================================

_FATIGUE_RECOMMENDATION = (
    "Introduce new creative variations. Test different hooks in the first 3 seconds "
    "of video, or swap primary images. Avoid changing targeting at the same time so "
    "you can isolate the variable."
)

_LEADGEN_FATIGUE_RECOMMENDATION = (
    "Refresh creative with new angles. For leadgen, test different value propositions "
    "in the hook (free consultation, downloadable resource, limited spots). Lead magnets "
    "fatigue faster than product ads because perceived value drops with repeated exposure."
)

_AUCTION_RECOMMENDATION = (
    "Check whether this coincides with a seasonal competition spike (BFCM, Q4). Consider "
    "broadening audience targeting to reach cheaper inventory. Interest-based audiences "
    "may be oversaturated."
)

_LEADGEN_AUCTION_RECOMMENDATION = (
    "Leadgen audiences (especially B2B) are narrow and sensitive to auction pressure. "
    "Consider broadening the audience or shifting budget to lower-competition placements "
    "(Reels, Stories). Check for seasonal advertiser surges."
)


def create_creative_fatigue_advisor(recommendation: str = _FATIGUE_RECOMMENDATION) -> FindingAdvisor:
    """
    Flags CTR dropping while CPM holds: the audience is reached but not engaging.

    Needs `ctr` in both snapshots' topLevel and a non-zero previous CTR; CPM
    is treated as unchanged when it was not reported.
    """

    def creative_fatigue(stage_analysis, dropoffs, current, previous, context=None):
        current_ctr = current.top_level_value("ctr")
        previous_ctr = previous.top_level_value("ctr")
        if current_ctr is None or not previous_ctr:
            return []

        ctr_change = percent_change(current_ctr, previous_ctr)

        current_cpm = current.top_level_value("cpm")
        previous_cpm = previous.top_level_value("cpm")
        cpm_change = 0.0
        if current_cpm is not None and previous_cpm:
            cpm_change = percent_change(current_cpm, previous_cpm)

        if ctr_change >= CTR_FATIGUE_WARNING_PERCENT or cpm_change < CPM_STABLE_FLOOR_PERCENT:
            return []

        severity = Severity.CRITICAL if ctr_change < CTR_FATIGUE_CRITICAL_PERCENT else Severity.WARNING
        return [Finding(
            severity=severity,
            stage="click",
            message=(
                f"CTR dropped {ctr_change:.1f}% while CPMs held steady ({cpm_change:+.1f}%). "
                f"The audience is being reached but not engaging, a creative fatigue pattern."
            ),
            recommendation=recommendation,
        )]

    return creative_fatigue


def create_auction_competition_advisor(recommendation: str = _AUCTION_RECOMMENDATION) -> FindingAdvisor:
    """Flags CPM inflation above 25% (critical above 50%)."""

    def auction_competition(stage_analysis, dropoffs, current, previous, context=None):
        current_cpm = current.top_level_value("cpm")
        previous_cpm = previous.top_level_value("cpm")
        if current_cpm is None or not previous_cpm:
            return []

        cpm_change = percent_change(current_cpm, previous_cpm)
        if cpm_change <= CPM_WARNING_PERCENT:
            return []

        severity = Severity.CRITICAL if cpm_change > CPM_CRITICAL_PERCENT else Severity.WARNING
        return [Finding(
            severity=severity,
            stage="awareness",
            message=(
                f"CPMs increased {cpm_change:.1f}% (${previous_cpm:.2f} -> ${current_cpm:.2f}). "
                f"This inflates costs at every downstream stage even if conversion rates hold."
            ),
            recommendation=recommendation,
        )]

    return auction_competition


creative_fatigue_advisor = create_creative_fatigue_advisor()
leadgen_creative_fatigue_advisor = create_creative_fatigue_advisor(_LEADGEN_FATIGUE_RECOMMENDATION)
auction_competition_advisor = create_auction_competition_advisor()
leadgen_auction_competition_advisor = create_auction_competition_advisor(_LEADGEN_AUCTION_RECOMMENDATION)


# =============================================================================
# Vertical Advisors
# =============================================================================


def checkout_friction_advisor(
    stage_analysis: List[StageDiagnostic],
    dropoffs: List[FunnelDropoff],
    current: MetricSnapshot,
    previous: MetricSnapshot,
    context: Optional[DiagnosticContext] = None,
) -> List[Finding]:
    """Shoppers adding to cart but abandoning at checkout."""
    atc_to_purchase = _find_dropoff(dropoffs, "add_to_cart", "purchase")
    if atc_to_purchase is None:
        return []

    findings: List[Finding] = []
    stage = "add_to_cart -> purchase"

    if atc_to_purchase.deltaPercent < CHECKOUT_WARNING_PERCENT:
        severity = Severity.CRITICAL if atc_to_purchase.deltaPercent < CHECKOUT_CRITICAL_PERCENT else Severity.WARNING
        findings.append(Finding(
            severity=severity,
            stage=stage,
            message=(
                f"ATC-to-purchase rate dropped {atc_to_purchase.deltaPercent:.1f}% "
                f"({_pct(atc_to_purchase.previousRate)} -> {_pct(atc_to_purchase.currentRate)}). "
                f"Shoppers are adding to cart but abandoning at checkout."
            ),
            recommendation=(
                "Verify the purchase pixel event is firing. Check for payment gateway issues, "
                "shipping cost or delivery time changes, and new checkout friction such as "
                "mandatory account creation or extra form fields."
            ),
        ))

    if 0 < atc_to_purchase.currentRate < CHECKOUT_MIN_HEALTHY_RATE:
        findings.append(Finding(
            severity=Severity.INFO,
            stage=stage,
            message=(
                f"Only {_pct(atc_to_purchase.currentRate)} of add-to-carts convert to purchases, "
                f"below the typical 20-50% range."
            ),
            recommendation=(
                "Consider cart abandonment email/SMS sequences, a shorter checkout, "
                "or guest checkout if it is not already available."
            ),
        ))

    return findings


def form_conversion_advisor(
    stage_analysis: List[StageDiagnostic],
    dropoffs: List[FunnelDropoff],
    current: MetricSnapshot,
    previous: MetricSnapshot,
    context: Optional[DiagnosticContext] = None,
) -> List[Finding]:
    """Users opening the lead form but not submitting it."""
    click_to_lead = _find_dropoff(dropoffs, "click", "lead")
    if click_to_lead is None:
        return []

    findings: List[Finding] = []
    stage = "click -> lead"

    if click_to_lead.deltaPercent < FORM_WARNING_PERCENT:
        severity = Severity.CRITICAL if click_to_lead.deltaPercent < FORM_CRITICAL_PERCENT else Severity.WARNING
        findings.append(Finding(
            severity=severity,
            stage=stage,
            message=(
                f"Click-to-lead conversion rate dropped {click_to_lead.deltaPercent:.1f}% "
                f"({_pct(click_to_lead.previousRate)} -> {_pct(click_to_lead.currentRate)}). "
                f"Users are opening the form but not completing it."
            ),
            recommendation=(
                "Check whether the form was recently modified. Keep instant forms to 3-5 fields "
                "and make sure the context card matches what the ad promises."
            ),
        ))

    if 0 < click_to_lead.currentRate < FORM_MIN_HEALTHY_RATE:
        findings.append(Finding(
            severity=Severity.INFO,
            stage=stage,
            message=(
                f"Click-to-lead rate is {_pct(click_to_lead.currentRate)}, below the typical "
                f"10-30% range for instant forms."
            ),
            recommendation=(
                "A low rate on pre-filled instant forms usually means too many fields, confusing "
                "custom questions, or a mismatch between the ad and the form."
            ),
        ))

    return findings


# =============================================================================
# Registry
# =============================================================================


def resolve_advisors(platform: Optional[PlatformType], vertical: VerticalType) -> List[FindingAdvisor]:
    """
    Ordered advisor list for a platform/vertical combination.

    Layers, in order: shared advisors, then vertical advisors. Checkout
    friction needs an add_to_cart stage, which the Google commerce funnel
    does not have; with no platform (a caller-supplied funnel) it is kept and
    simply finds nothing when the stages are absent.

    Example:
        >>> [a.__name__ for a in resolve_advisors(PlatformType.META, VerticalType.COMMERCE)]
        ['creative_fatigue', 'auction_competition', 'checkout_friction_advisor']
    """
    advisors: List[FindingAdvisor] = []

    if vertical == VerticalType.LEADGEN:
        advisors.append(leadgen_creative_fatigue_advisor)
        advisors.append(leadgen_auction_competition_advisor)
    else:
        advisors.append(creative_fatigue_advisor)
        advisors.append(auction_competition_advisor)

    if vertical == VerticalType.COMMERCE and platform != PlatformType.GOOGLE:
        advisors.append(checkout_friction_advisor)
    elif vertical == VerticalType.LEADGEN:
        advisors.append(form_conversion_advisor)

    return advisors
