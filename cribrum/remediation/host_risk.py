"""Per-host risk aggregation."""

import math
from collections import defaultdict

from pydantic import BaseModel, ConfigDict, Field

from cribrum.models.enums import RiskLevel, Severity, severity_rank
from cribrum.models.finding import Finding, severity_breakdown
from cribrum.scoring import round_half_up

# Severity weights for host risk (distinct from the per-finding 0-40 scale)
HOST_SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.CRITICAL: 40,
    Severity.HIGH: 25,
    Severity.MEDIUM: 15,
    Severity.LOW: 5,
    Severity.INFO: 1,
    Severity.UNKNOWN: 2,
}

RISK_THRESHOLDS: tuple[tuple[int, RiskLevel], ...] = (
    (70, RiskLevel.CRITICAL),
    (50, RiskLevel.HIGH),
    (30, RiskLevel.MEDIUM),
    (15, RiskLevel.LOW),
)


class HostRiskData(BaseModel):
    """Aggregate risk of one host."""

    host: str
    risk_score: int
    risk_level: RiskLevel
    total_findings: int
    severity_breakdown: dict[str, int]
    top_findings: list[Finding] = Field(default_factory=list)

    model_config = ConfigDict(use_enum_values=True)


class RiskSummaryStats(BaseModel):
    critical_risk_hosts: int = 0
    high_risk_hosts: int = 0
    medium_risk_hosts: int = 0
    low_risk_hosts: int = 0
    minimal_risk_hosts: int = 0
    average_risk_score: int = 0


def calculate_host_risk_score(findings: list[Finding]) -> int:
    """
    Score a set of findings on a 0-100 scale.

    The weighted sum is normalized against an all-critical set of the same
    size, then nudged up logarithmically with the number of findings.
    """
    if not findings:
        return 0

    weighted_sum = sum(
        HOST_SEVERITY_WEIGHTS[Severity.from_string(f.severity)] for f in findings
    )
    max_possible = len(findings) * HOST_SEVERITY_WEIGHTS[Severity.CRITICAL]
    normalized = weighted_sum / max_possible * 100
    adjusted = min(100.0, normalized * (1 + math.log10(len(findings)) * 0.1))
    return round_half_up(adjusted)


def get_risk_level(score: int) -> RiskLevel:
    for threshold, level in RISK_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.MINIMAL


def get_top_findings(findings: list[Finding], limit: int = 3) -> list[Finding]:
    """Most severe findings first, newest first within a severity."""
    ordered = sorted(
        findings,
        key=lambda f: (severity_rank(f.severity), -f.timestamp.timestamp()),
    )
    return ordered[:limit]


def calculate_host_risk(host: str, findings: list[Finding]) -> HostRiskData:
    score = calculate_host_risk_score(findings)
    return HostRiskData(
        host=host,
        risk_score=score,
        risk_level=get_risk_level(score),
        total_findings=len(findings),
        severity_breakdown=severity_breakdown(findings),
        top_findings=get_top_findings(findings),
    )


def calculate_all_host_risks(findings: list[Finding]) -> list[HostRiskData]:
    """
    Calculate risk for every host in a finding collection.

    Sorted by risk score, then critical count, then high count, then total
    findings, all descending.
    """
    by_host: dict[str, list[Finding]] = defaultdict(list)
    for finding in findings:
        by_host[finding.host].append(finding)

    host_risks = [calculate_host_risk(host, members) for host, members in by_host.items()]
    host_risks.sort(
        key=lambda h: (
            -h.risk_score,
            -h.severity_breakdown[Severity.CRITICAL.value],
            -h.severity_breakdown[Severity.HIGH.value],
            -h.total_findings,
        )
    )
    return host_risks


def get_risk_summary_stats(host_risks: list[HostRiskData]) -> RiskSummaryStats:
    stats = RiskSummaryStats()
    if not host_risks:
        return stats

    for host in host_risks:
        field = f"{host.risk_level}_risk_hosts"
        setattr(stats, field, getattr(stats, field) + 1)

    stats.average_risk_score = round_half_up(
        sum(h.risk_score for h in host_risks) / len(host_risks)
    )
    return stats
