"""
Enumeration definitions for the Funnel Compass analytics core.

All enums inherit from both `str` and `Enum` so that they serialize as plain
strings inside Pydantic models and FastAPI responses.

Vocabularies:
- Severity: verdict attached to every stage, finding and KPI summary
- EntityLevel / VerticalType / PlatformType: what is being diagnosed
- MetricSource: where a funnel stage's metric lives in the raw platform payload
- PlatformStatus: outcome of one platform's run inside a portfolio request
- CrossPlatformSignalType / ConfidenceTier / RiskLevel: correlator and
  portfolio action vocabulary
"""

from enum import Enum


class Severity(str, Enum):
    """
    Severity verdict for a stage, finding or KPI summary.

    Totally ordered: healthy < info < warning < critical. The absence of a
    problem is represented explicitly as `healthy`, never by omission.
    """
    HEALTHY = "healthy"
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position in the total order (healthy=0 ... critical=3)."""
        return _SEVERITY_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.HEALTHY: 0,
    Severity.INFO: 1,
    Severity.WARNING: 2,
    Severity.CRITICAL: 3,
}


class EntityLevel(str, Enum):
    """Granularity of the advertising entity a snapshot describes."""
    ACCOUNT = "account"
    CAMPAIGN = "campaign"
    ADSET = "adset"
    AD = "ad"


class VerticalType(str, Enum):
    """
    Business vertical that determines funnel shape and benchmarks.

    - commerce: impression -> click -> ... -> purchase
    - leadgen: impression -> click -> lead -> qualified lead
    - brand: impression -> reach -> video / recall engagement
    """
    COMMERCE = "commerce"
    LEADGEN = "leadgen"
    BRAND = "brand"


class MetricSource(str, Enum):
    """
    Location of a funnel metric in the platform payload.

    The fetch layer normalizes every stage into `MetricSnapshot.stages`;
    `top_level` and `metrics` stages may additionally be read from
    `MetricSnapshot.topLevel`.
    """
    TOP_LEVEL = "top_level"
    ACTIONS = "actions"
    CONVERSION_ACTION = "conversion_action"
    METRICS = "metrics"
    COST_PER_ACTION_TYPE = "cost_per_action_type"


class PlatformType(str, Enum):
    """Advertising platforms supported by the portfolio runner."""
    META = "meta"
    GOOGLE = "google"
    TIKTOK = "tiktok"


class PlatformStatus(str, Enum):
    """Outcome of a single platform's diagnostic inside a portfolio run."""
    SUCCESS = "success"
    ERROR = "error"


class CrossPlatformSignalType(str, Enum):
    """
    Cross-platform signal types emitted by the correlator.

    The correlator generates market_wide_cpm_increase, halo_effect and
    platform_conflict findings. budget_reallocation is carried by
    BudgetRecommendation records rather than findings. Only market-wide CPM
    findings turn into portfolio actions.
    """
    MARKET_WIDE_CPM_INCREASE = "market_wide_cpm_increase"
    HALO_EFFECT = "halo_effect"
    PLATFORM_CONFLICT = "platform_conflict"
    BUDGET_REALLOCATION = "budget_reallocation"


class ConfidenceTier(str, Enum):
    """Coarse confidence attached to a budget recommendation."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskLevel(str, Enum):
    """
    Risk of acting on a portfolio action.

    - low: reversible, no spend moved (e.g. fixing a bottleneck)
    - medium: moderate budget movement or market-level reaction
    - high: large budget shift (> 30%)
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
