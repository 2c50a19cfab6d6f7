"""Pairwise similarity scoring between findings."""

from cribrum.correlation.identifiers import finding_cve_ids
from cribrum.models.finding import Finding
from cribrum.scoring import round_half_up

TEMPLATE_POINTS = 40
HOST_POINTS = 25
SEVERITY_POINTS = 10
TYPE_POINTS = 5
TAG_POINTS = 10
CVE_POINTS = 10


def calculate_similarity(a: Finding, b: Finding) -> int:
    """
    Calculate a 0-100 closeness score between two findings.

    Weighted evidence: each applicable term adds to both the achieved and
    the achievable score. Tag overlap only applies when either side has
    tags, and shared CVEs only when both sides reference a CVE. Every term
    is symmetric, so ``calculate_similarity(a, b) == calculate_similarity(b, a)``.
    """
    score = 0
    max_score = 0

    max_score += TEMPLATE_POINTS
    if a.template_id == b.template_id:
        score += TEMPLATE_POINTS

    max_score += HOST_POINTS
    if a.host == b.host:
        score += HOST_POINTS

    max_score += SEVERITY_POINTS
    if a.severity == b.severity:
        score += SEVERITY_POINTS

    max_score += TYPE_POINTS
    if a.type == b.type:
        score += TYPE_POINTS

    tags_a = set(a.tags)
    tags_b = set(b.tags)
    if tags_a or tags_b:
        max_score += TAG_POINTS
        overlap = len(tags_a & tags_b) / max(len(tags_a), len(tags_b))
        score += round_half_up(overlap * TAG_POINTS)

    cves_a = set(finding_cve_ids(a))
    cves_b = set(finding_cve_ids(b))
    if cves_a and cves_b:
        max_score += CVE_POINTS
        if cves_a & cves_b:
            score += CVE_POINTS

    return round_half_up(score / max_score * 100)


def find_related_findings(
    finding: Finding,
    candidates: list[Finding],
    min_score: int = 50,
    limit: int | None = 10,
) -> list[tuple[Finding, int]]:
    """
    Suggest findings related to ``finding``.

    Args:
        finding: The finding to find relatives for
        candidates: Pool of findings to score (``finding`` itself is skipped)
        min_score: Minimum similarity to be suggested
        limit: Maximum number of suggestions, None for all

    Returns:
        (finding, score) pairs, most similar first; ties keep pool order
    """
    scored = [
        (candidate, calculate_similarity(finding, candidate))
        for candidate in candidates
        if candidate.id != finding.id
    ]
    related = [pair for pair in scored if pair[1] >= min_score]
    related.sort(key=lambda pair: -pair[1])
    return related if limit is None else related[:limit]
