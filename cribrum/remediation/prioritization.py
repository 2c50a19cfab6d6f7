"""Multi-factor risk scoring and ranking of findings.

A finding's risk score is the sum of independently capped factors, capped
again at 100:

- base severity score (0-40)
- CVSS boost, twice the CVSS base score (0-20)
- known-exploited boost, 20, or 25 when tied to ransomware campaigns
- public exploit boost (15)
- internet-facing boost (5)

Enrichment is always supplied by the caller; missing enrichment simply
means no boost.
"""

from collections import defaultdict

from pydantic import BaseModel, ConfigDict, Field

from cribrum.logging import get_logger
from cribrum.models.enrichment import FindingEnrichment
from cribrum.models.enums import PriorityLabel, Severity
from cribrum.models.finding import Finding
from cribrum.scoring import clamp, round_half_up

logger = get_logger("remediation.prioritization")

MAX_RISK_SCORE = 100
KEV_BOOST = 20
KEV_RANSOMWARE_BOOST = 25
EXPLOIT_BOOST = 15
INTERNET_FACING_BOOST = 5


class PrioritizationFactors(BaseModel):
    """Additive factors that make up a risk score."""

    base_severity_score: int = 0
    cvss_boost: int = 0
    kev_boost: int = 0
    exploit_boost: int = 0
    internet_facing_boost: int = 0

    @property
    def total(self) -> int:
        """Uncapped sum of all factors."""
        return (
            self.base_severity_score
            + self.cvss_boost
            + self.kev_boost
            + self.exploit_boost
            + self.internet_facing_boost
        )


class RiskScore(BaseModel):
    """A capped risk score and the factors that produced it."""

    score: int = Field(ge=0, le=MAX_RISK_SCORE)
    factors: PrioritizationFactors


class PrioritizedFinding(BaseModel):
    """A finding with its risk score, rank and priority band."""

    finding: Finding
    risk_score: int = Field(ge=0, le=MAX_RISK_SCORE)
    factors: PrioritizationFactors
    priority_rank: int = 0
    priority_label: PriorityLabel

    model_config = ConfigDict(use_enum_values=True)


class PrioritizationStats(BaseModel):
    """Summary of a prioritized collection."""

    total: int = 0
    by_priority: dict[str, int] = Field(
        default_factory=lambda: {label.value: 0 for label in PriorityLabel}
    )
    avg_score: int = 0
    highest_score: int = 0
    lowest_score: int = 0
    with_kev: int = 0
    with_exploit: int = 0


def is_internet_facing(finding: Finding) -> bool:
    """Cheap exposure heuristic: the host is an http(s) URL."""
    return finding.host.lower().startswith("http")


def calculate_risk_score(
    finding: Finding, enrichment: FindingEnrichment | None = None
) -> RiskScore:
    """
    Calculate the 0-100 risk score of a single finding.

    Args:
        finding: Finding to score
        enrichment: Optional CVE details, KEV entry and exposure signal

    Returns:
        RiskScore with the capped score and its factors
    """
    factors = PrioritizationFactors(
        base_severity_score=Severity.from_string(finding.severity).risk_weight
    )

    if enrichment is not None:
        cvss_score = enrichment.cvss_score
        if cvss_score is not None:
            factors.cvss_boost = round_half_up(clamp(cvss_score, 0.0, 10.0) * 2)

        if enrichment.kev_entry is not None:
            factors.kev_boost = (
                KEV_RANSOMWARE_BOOST if enrichment.kev_entry.ransomware_use else KEV_BOOST
            )

        if enrichment.exploit_available:
            factors.exploit_boost = EXPLOIT_BOOST

        if enrichment.is_internet_facing:
            factors.internet_facing_boost = INTERNET_FACING_BOOST

    return RiskScore(score=min(MAX_RISK_SCORE, factors.total), factors=factors)


def get_priority_label(score: int) -> PriorityLabel:
    """Band a risk score: >=80 Critical, >=60 High, >=40 Medium, >=20 Low."""
    return PriorityLabel.from_score(score)


def resolve_enrichment(
    finding: Finding,
    enrichment: FindingEnrichment | None,
    infer_internet_facing: bool,
) -> FindingEnrichment | None:
    """Fill in exposure from the host heuristic when the enrichment is silent about it."""
    if not infer_internet_facing:
        return enrichment
    if enrichment is None:
        return FindingEnrichment(is_internet_facing=is_internet_facing(finding))
    if enrichment.is_internet_facing is None:
        return enrichment.model_copy(
            update={"is_internet_facing": is_internet_facing(finding)}
        )
    return enrichment


def prioritize_findings(
    findings: list[Finding],
    enrichment_by_finding_id: dict[str, FindingEnrichment] | None = None,
    infer_internet_facing: bool = True,
) -> list[PrioritizedFinding]:
    """
    Score every finding and rank the collection.

    Args:
        findings: Findings to prioritize
        enrichment_by_finding_id: Optional enrichment keyed by finding id
        infer_internet_facing: Fall back to the host heuristic when the
            enrichment does not state exposure

    Returns:
        Prioritized findings, highest score first (exact ties keep input
        order), with ranks 1..N
    """
    enrichment_by_finding_id = enrichment_by_finding_id or {}

    scored: list[PrioritizedFinding] = []
    for finding in findings:
        enrichment = resolve_enrichment(
            finding, enrichment_by_finding_id.get(finding.id), infer_internet_facing
        )
        risk = calculate_risk_score(finding, enrichment)
        scored.append(
            PrioritizedFinding(
                finding=finding,
                risk_score=risk.score,
                factors=risk.factors,
                priority_label=get_priority_label(risk.score),
            )
        )

    scored.sort(key=lambda item: -item.risk_score)
    for index, item in enumerate(scored):
        item.priority_rank = index + 1

    logger.debug(f"Prioritized {len(scored)} findings")
    return scored


def get_prioritization_stats(prioritized: list[PrioritizedFinding]) -> PrioritizationStats:
    """Reduce a prioritized collection to label counts, score range and boost counts."""
    stats = PrioritizationStats(total=len(prioritized))
    if not prioritized:
        return stats

    total_score = 0
    stats.lowest_score = MAX_RISK_SCORE
    for item in prioritized:
        stats.by_priority[item.priority_label] += 1
        total_score += item.risk_score
        stats.highest_score = max(stats.highest_score, item.risk_score)
        stats.lowest_score = min(stats.lowest_score, item.risk_score)
        if item.factors.kev_boost > 0:
            stats.with_kev += 1
        if item.factors.exploit_boost > 0:
            stats.with_exploit += 1

    stats.avg_score = round_half_up(total_score / len(prioritized))
    return stats


def filter_by_risk_score(
    prioritized: list[PrioritizedFinding], min_score: int
) -> list[PrioritizedFinding]:
    """Keep findings scoring at least ``min_score``."""
    return [p for p in prioritized if p.risk_score >= min_score]


def filter_by_priority(
    prioritized: list[PrioritizedFinding], priorities: list[PriorityLabel | str]
) -> list[PrioritizedFinding]:
    """Keep findings whose label is one of ``priorities``."""
    wanted = {PriorityLabel(p).value for p in priorities}
    return [p for p in prioritized if p.priority_label in wanted]


def get_kev_findings(prioritized: list[PrioritizedFinding]) -> list[PrioritizedFinding]:
    """Findings boosted by a known-exploited catalog entry."""
    return [p for p in prioritized if p.factors.kev_boost > 0]


def get_exploitable_findings(prioritized: list[PrioritizedFinding]) -> list[PrioritizedFinding]:
    """Findings with a public exploit available."""
    return [p for p in prioritized if p.factors.exploit_boost > 0]


def get_top_priority_findings(
    prioritized: list[PrioritizedFinding], count: int
) -> list[PrioritizedFinding]:
    return prioritized[:count]


def group_by_priority(
    prioritized: list[PrioritizedFinding],
) -> dict[str, list[PrioritizedFinding]]:
    """Bucket prioritized findings by label, every label present."""
    groups: dict[str, list[PrioritizedFinding]] = defaultdict(list)
    for label in PriorityLabel:
        groups[label.value] = []
    for item in prioritized:
        groups[item.priority_label].append(item)
    return dict(groups)
