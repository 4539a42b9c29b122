"""
Plain-text rendering of diagnostic results.

- generate_executive_summary: one block per platform, then cross-platform
  insights, budget recommendations and the ranked portfolio actions.
- format_diagnostic: a single platform/entity diagnostic in full.

Output is Markdown-flavoured plain text, suitable for logs, chat and e-mail.
"""

from typing import List, Optional, Sequence

from funnel_compass.models import (
    BudgetRecommendation,
    CrossPlatformFinding,
    DiagnosticResult,
    PlatformResult,
    PortfolioAction,
    Severity,
)
from funnel_compass.services.advisors import DROPOFF_WARNING_PERCENT


def severity_tag(severity: Severity) -> str:
    return f"[{severity.value.upper()}]"


def _signed(value: float) -> str:
    return f"{value:+.1f}%"


def _platform_block(pr: PlatformResult) -> List[str]:
    header = pr.platform.value.upper()
    if not pr.succeeded:
        return [f"### {header}: Error", pr.error or "Unknown error", ""]

    result = pr.result
    kpi = result.primaryKPI
    lines = [
        f"### {header}: {severity_tag(kpi.severity)}",
        f"{kpi.name}: ${kpi.current:.2f} ({_signed(kpi.deltaPercent)} WoW)",
        f"Spend: ${result.spend.current:.2f} (prev: ${result.spend.previous:.2f})",
    ]

    if result.bottleneck is not None:
        lines.append(f"Bottleneck: {result.bottleneck.stageName} ({result.bottleneck.deltaPercent:.1f}% drop)")

    critical = sum(1 for f in result.findings if f.severity == Severity.CRITICAL)
    warning = sum(1 for f in result.findings if f.severity == Severity.WARNING)
    parts = []
    if critical:
        parts.append(f"{critical} critical")
    if warning:
        parts.append(f"{warning} warning")
    if parts:
        lines.append(f"Findings: {', '.join(parts)}")

    if result.advisorFailures:
        names = ", ".join(f.advisor for f in result.advisorFailures)
        lines.append(f"Advisors unavailable: {names}")

    lines.append("")
    return lines


def generate_executive_summary(
    platforms: Sequence[PlatformResult],
    cross_platform_findings: Sequence[CrossPlatformFinding],
    budget_recommendations: Sequence[BudgetRecommendation],
    portfolio_actions: Optional[Sequence[PortfolioAction]] = None,
) -> str:
    """Executive summary of a portfolio run."""
    succeeded = sum(1 for p in platforms if p.succeeded)
    failed = len(platforms) - succeeded

    overview = f"Analyzed {succeeded} platform{'' if succeeded == 1 else 's'}"
    if failed:
        overview += f" ({failed} failed)"

    lines = ["## Multi-Platform Diagnostic Summary", "", overview + ".", ""]

    for pr in platforms:
        lines.extend(_platform_block(pr))

    if cross_platform_findings:
        lines.append("### Cross-Platform Insights")
        for finding in cross_platform_findings:
            lines.append(f"{severity_tag(finding.severity)} {finding.message}")
            lines.append(f"  -> {finding.recommendation}")
            lines.append("")

    if budget_recommendations:
        lines.append("### Budget Recommendations")
        for rec in budget_recommendations:
            shift = f" (shift ~{rec.suggestedShiftPercent:.0f}%)" if rec.suggestedShiftPercent else ""
            lines.append(
                f"[{rec.confidence.value}] Consider shifting budget from "
                f"{rec.fromPlatform.value} to {rec.toPlatform.value}{shift}: {rec.reason}"
            )
        lines.append("")

    if portfolio_actions:
        lines.append("### Portfolio Actions (Ranked)")
        for action in portfolio_actions:
            revenue = ""
            if action.estimatedRevenueRecovery > 0:
                revenue = f", est. ${action.estimatedRevenueRecovery:,.0f} recovery"
            lines.append(
                f"{action.priority}. [{action.riskLevel.value.upper()} RISK] {action.action} "
                f"({action.confidenceScore * 100:.0f}% confidence{revenue})"
            )
        lines.append("")

    return "\n".join(lines)


def format_diagnostic(result: DiagnosticResult) -> str:
    """Full human-readable rendering of one DiagnosticResult."""
    platform = f" ({result.platform.value.upper()})" if result.platform else ""
    current, previous = result.periods.current, result.periods.previous
    kpi = result.primaryKPI

    lines = [
        f"## Funnel Diagnostic: {result.entityId}{platform}",
        f"Period: {current.since} to {current.until} vs {previous.since} to {previous.until}",
        f"Spend: ${result.spend.current:.2f} (prev: ${result.spend.previous:.2f})",
    ]
    if result.seasonalEvent:
        lines.append(f"Seasonal window: {result.seasonalEvent} (thresholds relaxed)")
    lines.append("")

    lines.append(f"### Primary KPI: {kpi.name} {severity_tag(kpi.severity)}")
    lines.append(
        f"${kpi.current:.2f} (was ${kpi.previous:.2f}, {_signed(kpi.deltaPercent)} WoW)"
    )
    lines.append("")

    lines.append("### Funnel Stage Volumes (WoW)")
    for stage in result.stageAnalysis:
        tag = f" {severity_tag(stage.severity)}" if stage.isSignificant else ""
        lines.append(f"- {stage.stageName}: {stage.currentValue:,.0f} ({_signed(stage.deltaPercent)}){tag}")
    lines.append("")

    if result.dropoffs:
        lines.append("### Stage Conversion Rates")
        for dropoff in result.dropoffs:
            flag = " (!)" if dropoff.is_worsened(DROPOFF_WARNING_PERCENT) else ""
            lines.append(
                f"- {dropoff.fromStage} -> {dropoff.toStage}: {dropoff.currentRate * 100:.2f}% "
                f"(was {dropoff.previousRate * 100:.2f}%){flag}"
            )
        lines.append("")

    if result.bottleneck is not None:
        lines.append(f"### Bottleneck: {result.bottleneck.stageName} ({result.bottleneck.deltaPercent:.1f}% drop)")
        lines.append("")

    if result.elasticity is not None and result.elasticity.impactRanking:
        lines.append(
            f"### Revenue at Risk: ${abs(result.elasticity.totalEstimatedRevenueLoss):,.0f}"
        )
        for entry in result.elasticity.impactRanking:
            lines.append(f"- {entry.stage}: ${entry.estimatedRevenueDelta:,.0f} {severity_tag(entry.severity)}")
        lines.append("")

    if result.findings:
        lines.append("### Findings")
        for finding in result.findings:
            lines.append(f"{severity_tag(finding.severity)} [{finding.stage}] {finding.message}")
            if finding.recommendation:
                lines.append(f"  -> {finding.recommendation}")
            lines.append("")

    if result.advisorFailures:
        lines.append("### Advisor Failures")
        for failure in result.advisorFailures:
            lines.append(f"- {failure.advisor}: {failure.error}")
        lines.append("")

    return "\n".join(lines)
