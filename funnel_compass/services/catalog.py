"""
Built-in Funnel and Benchmark Catalog

Default funnel schemas for every supported platform/vertical combination and
the vertical benchmark tables the Threshold Resolver falls back to when an
account has too little history.

Funnel shapes:
- Meta commerce:   awareness -> click -> landing_page -> view_content -> add_to_cart -> purchase
- Google commerce: awareness -> click -> conversion
- TikTok commerce: awareness -> click -> view_content -> add_to_cart -> purchase
- Leadgen:         awareness -> click -> lead (-> qualified_lead on Meta)
- Brand:           awareness -> reach / view -> engagement or recall

Stage metric keys are the platform's own field names (Meta `actions[]`
action types, Google Ads `metrics.*`, TikTok report metrics), so snapshots
produced by a platform client can be walked without renaming.

Benchmarks are keyed by the Meta metric names. Metrics absent from a table
(e.g. Google `clicks` under commerce) have no benchmark, and the resolver
falls back to the spend heuristic or the configured default variance.
"""

from typing import Dict, Optional, Tuple

from funnel_compass.models import (
    FunnelSchema,
    FunnelStage,
    MetricSource,
    PlatformType,
    StageBenchmark,
    VerticalBenchmarks,
    VerticalType,
)
from funnel_compass.services.errors import UnsupportedFunnelError

# Meta action type carrying qualified leads sent back through the Conversions API
DEFAULT_QUALIFIED_LEAD_ACTION = "offsite_conversion.fb_pixel_lead"


def _stage(
    name: str,
    metric: str,
    source: MetricSource,
    cost_metric: Optional[str] = None,
    cost_source: Optional[MetricSource] = None,
) -> FunnelStage:
    return FunnelStage(
        name=name,
        metric=metric,
        metricSource=source,
        costMetric=cost_metric,
        costMetricSource=cost_source,
    )


_TOP = MetricSource.TOP_LEVEL
_ACTIONS = MetricSource.ACTIONS
_METRICS = MetricSource.METRICS
_CPA = MetricSource.COST_PER_ACTION_TYPE


# =============================================================================
# Meta Funnels
# =============================================================================

META_COMMERCE_FUNNEL = FunnelSchema(
    vertical=VerticalType.COMMERCE,
    stages=[
        _stage("awareness", "impressions", _TOP, "cpm", _TOP),
        _stage("click", "inline_link_clicks", _TOP, "cpc", _TOP),
        _stage("landing_page", "landing_page_view", _ACTIONS),
        _stage("view_content", "view_content", _ACTIONS),
        _stage("add_to_cart", "add_to_cart", _ACTIONS, "add_to_cart", _CPA),
        _stage("purchase", "purchase", _ACTIONS, "purchase", _CPA),
    ],
    primaryKPI="purchase",
    roasMetric="website_purchase_roas",
)


def build_meta_leadgen_funnel(
    qualified_lead_action: str = DEFAULT_QUALIFIED_LEAD_ACTION,
) -> FunnelSchema:
    """
    Meta instant-form funnel with a configurable qualified-lead action type.

    Advertisers name the qualified-lead event differently
    (`offsite_conversion.custom.<name>`), so the last stage's metric key is a
    parameter.
    """
    return FunnelSchema(
        vertical=VerticalType.LEADGEN,
        stages=[
            _stage("awareness", "impressions", _TOP, "cpm", _TOP),
            _stage("click", "inline_link_clicks", _TOP, "cpc", _TOP),
            _stage("lead", "lead", _ACTIONS, "lead", _CPA),
            _stage("qualified_lead", qualified_lead_action, _ACTIONS, qualified_lead_action, _CPA),
        ],
        primaryKPI="lead",
    )


META_BRAND_FUNNEL = FunnelSchema(
    vertical=VerticalType.BRAND,
    stages=[
        _stage("awareness", "impressions", _TOP, "cpm", _TOP),
        _stage("reach", "reach", _TOP),
        _stage("thruplay", "video_thruplay_actions", _ACTIONS, "video_thruplay_actions", _CPA),
        _stage("ad_recall", "estimated_ad_recall_lift", _TOP),
    ],
    primaryKPI="video_thruplay_actions",
)


# =============================================================================
# Google Ads Funnels
# =============================================================================

GOOGLE_COMMERCE_FUNNEL = FunnelSchema(
    vertical=VerticalType.COMMERCE,
    stages=[
        _stage("awareness", "impressions", _METRICS, "cpm", _METRICS),
        _stage("click", "clicks", _METRICS, "cpc", _METRICS),
        _stage("conversion", "conversions", _METRICS, "cost_per_conversion", _METRICS),
    ],
    primaryKPI="conversions",
    roasMetric="roas",
)

GOOGLE_LEADGEN_FUNNEL = FunnelSchema(
    vertical=VerticalType.LEADGEN,
    stages=[
        _stage("awareness", "impressions", _METRICS, "cpm", _METRICS),
        _stage("click", "clicks", _METRICS, "cpc", _METRICS),
        _stage("lead", "conversions", MetricSource.CONVERSION_ACTION, "cost_per_conversion", _METRICS),
    ],
    primaryKPI="conversions",
)

GOOGLE_BRAND_FUNNEL = FunnelSchema(
    vertical=VerticalType.BRAND,
    stages=[
        _stage("awareness", "impressions", _METRICS, "cpm", _METRICS),
        _stage("view", "video_views", _METRICS, "video_views", _METRICS),
        _stage("engagement", "clicks", _METRICS, "cpc", _METRICS),
    ],
    primaryKPI="video_views",
)


# =============================================================================
# TikTok Funnels
# =============================================================================

TIKTOK_COMMERCE_FUNNEL = FunnelSchema(
    vertical=VerticalType.COMMERCE,
    stages=[
        _stage("awareness", "impressions", _METRICS, "cpm", _METRICS),
        _stage("click", "clicks", _METRICS, "cpc", _METRICS),
        _stage("view_content", "page_browse", _METRICS),
        _stage("add_to_cart", "onsite_add_to_cart", _METRICS, "onsite_add_to_cart", _METRICS),
        _stage("purchase", "complete_payment", _METRICS, "complete_payment", _METRICS),
    ],
    primaryKPI="complete_payment",
    roasMetric="complete_payment_roas",
)

TIKTOK_LEADGEN_FUNNEL = FunnelSchema(
    vertical=VerticalType.LEADGEN,
    stages=[
        _stage("awareness", "impressions", _METRICS, "cpm", _METRICS),
        _stage("click", "clicks", _METRICS, "cpc", _METRICS),
        _stage("lead", "onsite_form", _METRICS, "onsite_form", _METRICS),
    ],
    primaryKPI="onsite_form",
)

TIKTOK_BRAND_FUNNEL = FunnelSchema(
    vertical=VerticalType.BRAND,
    stages=[
        _stage("awareness", "impressions", _METRICS, "cpm", _METRICS),
        _stage("reach", "reach", _METRICS),
        _stage("video_view", "video_views_p50", _METRICS, "video_views_p50", _METRICS),
        _stage("engagement", "clicks", _METRICS, "cpc", _METRICS),
    ],
    primaryKPI="video_views_p50",
)


FUNNELS: Dict[Tuple[PlatformType, VerticalType], FunnelSchema] = {
    (PlatformType.META, VerticalType.COMMERCE): META_COMMERCE_FUNNEL,
    (PlatformType.META, VerticalType.LEADGEN): build_meta_leadgen_funnel(),
    (PlatformType.META, VerticalType.BRAND): META_BRAND_FUNNEL,
    (PlatformType.GOOGLE, VerticalType.COMMERCE): GOOGLE_COMMERCE_FUNNEL,
    (PlatformType.GOOGLE, VerticalType.LEADGEN): GOOGLE_LEADGEN_FUNNEL,
    (PlatformType.GOOGLE, VerticalType.BRAND): GOOGLE_BRAND_FUNNEL,
    (PlatformType.TIKTOK, VerticalType.COMMERCE): TIKTOK_COMMERCE_FUNNEL,
    (PlatformType.TIKTOK, VerticalType.LEADGEN): TIKTOK_LEADGEN_FUNNEL,
    (PlatformType.TIKTOK, VerticalType.BRAND): TIKTOK_BRAND_FUNNEL,
}


# =============================================================================
# Vertical Benchmarks
# Structure: { metric: (expectedDropoffRate, normalVariancePercent) }
# expectedDropoffRate is the share of the stage above that reaches this stage;
# the top of the funnel has no stage above and uses 1.
# =============================================================================

_BENCHMARK_TABLES: Dict[VerticalType, Dict[str, Tuple[float, float]]] = {
    VerticalType.COMMERCE: {
        "impressions": (1.0, 20.0),
        "inline_link_clicks": (0.02, 15.0),
        "landing_page_view": (0.8, 10.0),
        "view_content": (0.7, 12.0),
        "add_to_cart": (0.08, 18.0),
        "purchase": (0.35, 20.0),
    },
    VerticalType.LEADGEN: {
        "impressions": (1.0, 25.0),
        "inline_link_clicks": (0.025, 15.0),
        "lead": (0.2, 18.0),
        # Qualified leads are noisy: small volumes, offline feedback
        DEFAULT_QUALIFIED_LEAD_ACTION: (0.15, 30.0),
    },
    VerticalType.BRAND: {
        "impressions": (1.0, 25.0),
        "reach": (0.5, 20.0),
        "video_thruplay_actions": (0.25, 20.0),
        "video_views": (0.3, 18.0),
        "video_views_p50": (0.2, 22.0),
        "estimated_ad_recall_lift": (0.1, 30.0),
        "clicks": (0.01, 25.0),
    },
}


def _build_benchmarks(vertical: VerticalType) -> VerticalBenchmarks:
    table = _BENCHMARK_TABLES[vertical]
    return VerticalBenchmarks(
        vertical=vertical,
        benchmarks={
            metric: StageBenchmark(expectedDropoffRate=rate, normalVariancePercent=variance)
            for metric, (rate, variance) in table.items()
        },
    )


BENCHMARKS: Dict[VerticalType, VerticalBenchmarks] = {
    vertical: _build_benchmarks(vertical) for vertical in _BENCHMARK_TABLES
}


# =============================================================================
# Lookup
# =============================================================================


def resolve_funnel(platform: PlatformType, vertical: VerticalType) -> FunnelSchema:
    """
    Built-in funnel schema for a platform/vertical combination.

    Raises:
        UnsupportedFunnelError: If no schema is registered for the combination
    """
    try:
        key = (PlatformType(platform), VerticalType(vertical))
    except ValueError as exc:
        raise UnsupportedFunnelError(str(exc)) from exc

    funnel = FUNNELS.get(key)
    if funnel is None:
        raise UnsupportedFunnelError(
            f"No built-in funnel for platform '{platform}' and vertical '{vertical}'"
        )
    return funnel


def resolve_benchmarks(vertical: VerticalType) -> VerticalBenchmarks:
    """
    Benchmark table for a vertical.

    Raises:
        UnsupportedFunnelError: If no table is registered for the vertical
    """
    try:
        key = VerticalType(vertical)
    except ValueError as exc:
        raise UnsupportedFunnelError(str(exc)) from exc

    benchmarks = BENCHMARKS.get(key)
    if benchmarks is None:
        raise UnsupportedFunnelError(f"No benchmarks for vertical '{vertical}'")
    return benchmarks
