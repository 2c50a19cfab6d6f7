"""Grouping engine for deduplicating scan findings."""

import re
from collections import defaultdict
from typing import Any

from cribrum.correlation.identifiers import (
    extract_cve_ids,
    extract_cwe_ids,
    finding_cve_ids,
    finding_cwe_ids,
    identifier_text,
)
from cribrum.logging import get_logger
from cribrum.models.enums import DeduplicationStrategy, Severity, severity_rank
from cribrum.models.finding import Finding, FindingGroup, GroupMetadata

logger = get_logger("correlation.grouping")

ALL_STRATEGIES: tuple[DeduplicationStrategy, ...] = tuple(DeduplicationStrategy)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def group_key(finding: Finding, strategy: DeduplicationStrategy | str) -> str | None:
    """
    Build the grouping key of a finding under a strategy.

    Returns None when the finding cannot be grouped under the strategy
    (no CVE/CWE identifiers for the identifier strategies).
    """
    strategy = DeduplicationStrategy(strategy)

    if strategy == DeduplicationStrategy.EXACT:
        return f"{finding.template_id}|{finding.host}|{finding.matched_at}"
    if strategy == DeduplicationStrategy.TEMPLATE_HOST:
        return f"{finding.template_id}|{finding.host}"
    if strategy == DeduplicationStrategy.TEMPLATE:
        return finding.template_id
    if strategy == DeduplicationStrategy.CVE:
        cve_ids = finding_cve_ids(finding)
        return ",".join(sorted(cve_ids)) if cve_ids else None
    cwe_ids = finding_cwe_ids(finding)
    return ",".join(sorted(cwe_ids)) if cwe_ids else None


def _primary_sort_key(finding: Finding) -> tuple[int, int, float]:
    # Most severe, then most references, then most recent
    return (
        severity_rank(finding.severity),
        -len(finding.reference),
        -finding.timestamp.timestamp(),
    )


def select_primary_finding(findings: list[Finding]) -> Finding:
    """
    Select the representative finding of a group.

    Prefers highest severity, then most references, then most recent
    timestamp. Complete ties keep input order.
    """
    if len(findings) == 1:
        return findings[0]
    return min(findings, key=_primary_sort_key)


def highest_severity(findings: list[Finding]) -> Severity:
    """Return the most severe severity among findings (UNKNOWN when empty)."""
    if not findings:
        return Severity.UNKNOWN
    return Severity(min(findings, key=lambda f: severity_rank(f.severity)).severity)


def _unique_hosts(findings: list[Finding]) -> list[str]:
    return list(dict.fromkeys(f.host for f in findings))


class GroupingEngine:
    """
    Engine that partitions findings into groups under one strategy.

    Findings are bucketed by their strategy key in a single pass; findings
    without a key become singleton groups. Every input finding lands in
    exactly one group.
    """

    def __init__(self, strategy: DeduplicationStrategy | str = DeduplicationStrategy.EXACT):
        self.strategy = DeduplicationStrategy(strategy)

    def group(self, findings: list[Finding]) -> list[FindingGroup]:
        """
        Group findings under the engine's strategy.

        Args:
            findings: Findings to group (not modified)

        Returns:
            Groups sorted by highest severity, then member count descending
        """
        buckets: dict[str, list[Finding]] = defaultdict(list)
        ungrouped: list[Finding] = []

        for finding in findings:
            key = group_key(finding, self.strategy)
            if key is None:
                ungrouped.append(finding)
            else:
                buckets[key].append(finding)

        groups = [self._build_group(key, members) for key, members in buckets.items()]
        groups.extend(self._build_singleton(finding) for finding in ungrouped)

        groups.sort(key=lambda g: (severity_rank(g.highest_severity), -g.count))

        logger.debug(
            f"Grouped {len(findings)} findings into {len(groups)} groups "
            f"(strategy={self.strategy.value}, ungroupable={len(ungrouped)})"
        )
        return groups

    def _build_group(self, key: str, members: list[Finding]) -> FindingGroup:
        text = identifier_text(members)
        cve_ids = extract_cve_ids(text)
        cwe_ids = extract_cwe_ids(text)

        return FindingGroup(
            id=f"group-{_NON_ALNUM.sub('-', key)}",
            key=key,
            strategy=self.strategy,
            findings=list(members),
            primary_finding=select_primary_finding(members),
            count=len(members),
            unique_hosts=_unique_hosts(members),
            highest_severity=highest_severity(members),
            metadata=GroupMetadata(
                cve_ids=cve_ids or None,
                cwe_ids=cwe_ids or None,
                template_id=members[0].template_id,
            ),
        )

    def _build_singleton(self, finding: Finding) -> FindingGroup:
        return FindingGroup(
            id=f"single-{finding.id}",
            key=finding.id,
            strategy=self.strategy,
            findings=[finding],
            primary_finding=finding,
            count=1,
            unique_hosts=[finding.host],
            highest_severity=finding.severity,
            metadata=GroupMetadata(template_id=finding.template_id),
        )


class GroupingResult:
    """Result of a grouping run with statistics."""

    def __init__(
        self,
        groups: list[FindingGroup],
        total_findings: int,
        strategy: DeduplicationStrategy | str,
    ):
        self.groups = groups
        self.total_findings = total_findings
        self.strategy = DeduplicationStrategy(strategy)

    @property
    def unique_groups(self) -> int:
        """Number of groups after deduplication."""
        return len(self.groups)

    @property
    def duplicates_found(self) -> int:
        """Number of findings folded into another finding's group."""
        return max(0, self.total_findings - self.unique_groups)

    @property
    def dedup_rate(self) -> float:
        """Percentage of findings that were duplicates."""
        if self.total_findings == 0:
            return 0.0
        return (self.duplicates_found / self.total_findings) * 100

    def duplicate_groups(self) -> list[FindingGroup]:
        """Return groups holding more than one finding."""
        return [g for g in self.groups if g.count > 1]

    def by_severity(self) -> dict[str, int]:
        """Count groups by highest severity."""
        counts: dict[str, int] = defaultdict(int)
        for group in self.groups:
            counts[group.highest_severity] += 1
        return dict(counts)

    def primary_findings(self) -> list[Finding]:
        """Return one representative finding per group."""
        return [g.primary_finding for g in self.groups]

    def to_dict(self) -> dict[str, Any]:
        """Serialize the result to a JSON-compatible dictionary."""
        return {
            "strategy": self.strategy.value,
            "total_findings": self.total_findings,
            "unique_groups": self.unique_groups,
            "duplicates_found": self.duplicates_found,
            "groups": [g.model_dump(mode="json") for g in self.groups],
        }


def group_findings(
    findings: list[Finding],
    strategy: DeduplicationStrategy | str = DeduplicationStrategy.EXACT,
) -> GroupingResult:
    """
    Convenience function to group findings.

    Args:
        findings: Findings to group
        strategy: Grouping strategy

    Returns:
        GroupingResult with groups and statistics
    """
    engine = GroupingEngine(strategy)
    return GroupingResult(engine.group(findings), len(findings), engine.strategy)


def find_exact_duplicates(findings: list[Finding]) -> list[FindingGroup]:
    """Return groups of true duplicates (same template, host and match location)."""
    return group_findings(findings, DeduplicationStrategy.EXACT).duplicate_groups()


def detect_duplicates(findings: list[Finding]) -> dict[DeduplicationStrategy, GroupingResult]:
    """Group findings under every strategy, keyed by strategy."""
    return {strategy: group_findings(findings, strategy) for strategy in ALL_STRATEGIES}


def get_deduplication_stats(findings: list[Finding]) -> dict[str, int]:
    """Number of duplicates found under each strategy, keyed by strategy name."""
    return {
        strategy.value: result.duplicates_found
        for strategy, result in detect_duplicates(findings).items()
    }


def merge_duplicates(
    findings: list[Finding],
    strategy: DeduplicationStrategy | str = DeduplicationStrategy.EXACT,
) -> list[Finding]:
    """Collapse findings to one primary finding per group."""
    return group_findings(findings, strategy).primary_findings()


def get_duplicates_for(
    finding: Finding,
    all_findings: list[Finding],
    strategy: DeduplicationStrategy | str = DeduplicationStrategy.TEMPLATE_HOST,
) -> list[Finding]:
    """Return the other findings sharing ``finding``'s key under a strategy."""
    target_key = group_key(finding, strategy)
    if target_key is None:
        return []
    return [
        f for f in all_findings
        if f.id != finding.id and group_key(f, strategy) == target_key
    ]
