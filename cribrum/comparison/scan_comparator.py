"""Differencing of two scan snapshots."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from cribrum.logging import get_logger
from cribrum.models.enums import ScanTrend, Severity, is_more_severe, severity_rank
from cribrum.models.finding import Finding, Scan, severity_breakdown

logger = get_logger("comparison.scan_comparator")

# New findings beyond this multiple of the resolved ones degrade the trend
DEGRADED_VOLUME_RATIO = 1.5

_SERIOUS = (Severity.CRITICAL.value, Severity.HIGH.value)


class ScanComparisonStatistics(BaseModel):
    """Counts and overall trend of a scan comparison."""

    new_count: int = 0
    resolved_count: int = 0
    persisted_count: int = 0
    trend: ScanTrend = ScanTrend.STABLE

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class ScanComparisonResult(BaseModel):
    """Findings that appeared, disappeared or stayed between two snapshots."""

    new_findings: list[Finding] = Field(default_factory=list)
    resolved_findings: list[Finding] = Field(default_factory=list)
    persisted_findings: list[Finding] = Field(default_factory=list)
    statistics: ScanComparisonStatistics = Field(default_factory=ScanComparisonStatistics)

    @property
    def trend(self) -> str:
        return self.statistics.trend


def comparison_key(finding: Finding) -> str:
    """Template + host; match locations may shift between scan runs."""
    return f"{finding.template_id}::{finding.host}"


def _index_snapshot(findings: list[Finding]) -> dict[str, Finding]:
    index: dict[str, Finding] = {}
    for finding in findings:
        key = comparison_key(finding)
        current = index.get(key)
        if current is None or is_more_severe(finding.severity, current.severity):
            index[key] = finding
    return index


def _by_severity(findings: list[Finding]) -> list[Finding]:
    return sorted(findings, key=lambda f: severity_rank(f.severity))


def _serious_count(findings: list[Finding]) -> int:
    return sum(1 for f in findings if Severity.from_string(f.severity).value in _SERIOUS)


def classify_trend(new_findings: list[Finding], resolved_findings: list[Finding]) -> ScanTrend:
    """
    Classify the direction of change between two snapshots.

    Improved when more critical/high findings were resolved than introduced
    and more findings were resolved overall. Degraded when more critical/high
    findings were introduced than resolved, or the new findings outnumber
    the resolved ones by more than half again. Stable otherwise.
    """
    new_serious = _serious_count(new_findings)
    resolved_serious = _serious_count(resolved_findings)

    if resolved_serious > new_serious and len(resolved_findings) > len(new_findings):
        return ScanTrend.IMPROVED
    if (
        new_serious > resolved_serious
        or len(new_findings) > DEGRADED_VOLUME_RATIO * len(resolved_findings)
    ):
        return ScanTrend.DEGRADED
    return ScanTrend.STABLE


def compare_scan_findings(baseline: list[Finding], compare: list[Finding]) -> ScanComparisonResult:
    """
    Compare two finding snapshots.

    Findings are matched on template and host. Within one snapshot a
    repeated key keeps only its most severe member.

    Args:
        baseline: Findings of the earlier scan
        compare: Findings of the later scan

    Returns:
        ScanComparisonResult with new, resolved and persisted findings,
        each sorted most severe first
    """
    baseline_index = _index_snapshot(baseline)
    compare_index = _index_snapshot(compare)

    new_findings = [f for key, f in compare_index.items() if key not in baseline_index]
    resolved_findings = [f for key, f in baseline_index.items() if key not in compare_index]
    persisted_findings = [f for key, f in compare_index.items() if key in baseline_index]

    trend = classify_trend(new_findings, resolved_findings)
    logger.debug(
        f"Scan comparison: {len(new_findings)} new, {len(resolved_findings)} resolved, "
        f"{len(persisted_findings)} persisted ({trend.value})"
    )

    return ScanComparisonResult(
        new_findings=_by_severity(new_findings),
        resolved_findings=_by_severity(resolved_findings),
        persisted_findings=_by_severity(persisted_findings),
        statistics=ScanComparisonStatistics(
            new_count=len(new_findings),
            resolved_count=len(resolved_findings),
            persisted_count=len(persisted_findings),
            trend=trend,
        ),
    )


def calculate_severity_breakdown(findings: list[Finding]) -> dict[str, int]:
    """Count findings per severity, every severity present."""
    return severity_breakdown(findings)


def create_scan(
    project_id: str,
    name: str,
    findings: list[Finding],
    uploaded_file_ids: list[str],
    description: str | None = None,
    now: datetime | None = None,
) -> Scan:
    """Label a finding collection as one scan snapshot."""
    return Scan(
        project_id=project_id,
        name=name,
        description=description,
        created_at=now or datetime.now(timezone.utc),
        findings_count=len(findings),
        uploaded_file_ids=list(uploaded_file_ids),
        host_count=len({f.host for f in findings}),
        severity_breakdown=severity_breakdown(findings),
    )


def get_findings_for_scan(all_findings: list[Finding], scan: Scan) -> list[Finding]:
    """Findings whose source file belongs to the scan."""
    file_ids = set(scan.uploaded_file_ids)
    return [f for f in all_findings if f.source_file in file_ids]


def compare_scans(
    baseline_scan: Scan, compare_scan: Scan, all_findings: list[Finding]
) -> ScanComparisonResult:
    """Resolve both scans' members from a finding collection and compare them."""
    return compare_scan_findings(
        get_findings_for_scan(all_findings, baseline_scan),
        get_findings_for_scan(all_findings, compare_scan),
    )
