"""JSON output formatter for engine results."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cribrum import __version__
from cribrum.comparison.scan_comparator import ScanComparisonResult
from cribrum.correlation.grouping import GroupingResult
from cribrum.models.finding import Finding, FindingGroup
from cribrum.remediation.due_date import DueDateRecommendation
from cribrum.remediation.host_risk import HostRiskData, RiskSummaryStats
from cribrum.remediation.prioritization import PrioritizationStats, PrioritizedFinding


class JSONOutputFormatter:
    """Format engine results as JSON."""

    def __init__(self, pretty: bool = True, include_members: bool = True):
        """
        Initialize the formatter.

        Args:
            pretty: Whether to pretty-print JSON
            include_members: Whether to list every member finding of a group
        """
        self.pretty = pretty
        self.include_members = include_members

    def format(self, data: dict[str, Any]) -> str:
        """Wrap a result payload with metadata and serialize it."""
        document = {"metadata": self._metadata(), **data}
        if self.pretty:
            return json.dumps(document, indent=2, default=self._json_serializer)
        return json.dumps(document, default=self._json_serializer)

    def write(self, data: dict[str, Any], output_path: Path) -> None:
        """Write a result payload to a JSON file."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            f.write(self.format(data))

    def _metadata(self) -> dict[str, Any]:
        return {
            "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "cribrum_version": __version__,
        }

    def grouping(self, result: GroupingResult) -> dict[str, Any]:
        return {
            "summary": {
                "strategy": result.strategy.value,
                "total_findings": result.total_findings,
                "unique_groups": result.unique_groups,
                "duplicates_found": result.duplicates_found,
                "deduplication_rate": round(result.dedup_rate, 1),
                "by_severity": result.by_severity(),
            },
            "groups": [self._format_group(g) for g in result.groups],
        }

    def duplicate_stats(self, stats: dict[str, int], total_findings: int) -> dict[str, Any]:
        return {
            "total_findings": total_findings,
            "duplicates_by_strategy": stats,
        }

    def related(self, target: Finding, related: list[tuple[Finding, int]]) -> dict[str, Any]:
        return {
            "finding": self._format_finding(target),
            "related": [
                {"similarity": score, "finding": self._format_finding(f)}
                for f, score in related
            ],
        }

    def prioritization(
        self, prioritized: list[PrioritizedFinding], stats: PrioritizationStats
    ) -> dict[str, Any]:
        return {
            "summary": stats.model_dump(mode="json"),
            "findings": [
                {
                    "priority_rank": p.priority_rank,
                    "risk_score": p.risk_score,
                    "priority_label": p.priority_label,
                    "factors": p.factors.model_dump(mode="json"),
                    "finding": self._format_finding(p.finding),
                }
                for p in prioritized
            ],
        }

    def due_dates(
        self, recommendations: list[tuple[Finding, DueDateRecommendation]]
    ) -> dict[str, Any]:
        return {
            "recommendations": [
                {
                    "finding": self._format_finding(f),
                    **recommendation.model_dump(mode="json"),
                }
                for f, recommendation in recommendations
            ],
        }

    def comparison(self, result: ScanComparisonResult, include_persisted: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "statistics": result.statistics.model_dump(mode="json"),
            "new_findings": [self._format_finding(f) for f in result.new_findings],
            "resolved_findings": [self._format_finding(f) for f in result.resolved_findings],
        }
        if include_persisted:
            data["persisted_findings"] = [
                self._format_finding(f) for f in result.persisted_findings
            ]
        return data

    def host_risks(
        self, host_risks: list[HostRiskData], summary: RiskSummaryStats
    ) -> dict[str, Any]:
        return {
            "summary": summary.model_dump(mode="json"),
            "hosts": [
                {
                    "host": h.host,
                    "risk_score": h.risk_score,
                    "risk_level": h.risk_level,
                    "total_findings": h.total_findings,
                    "severity_breakdown": h.severity_breakdown,
                    "top_findings": [self._format_finding(f) for f in h.top_findings],
                }
                for h in host_risks
            ],
        }

    def _format_group(self, group: FindingGroup) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": group.id,
            "key": group.key,
            "count": group.count,
            "highest_severity": group.highest_severity,
            "unique_hosts": group.unique_hosts,
            "metadata": group.metadata.model_dump(exclude_none=True),
            "primary": self._format_finding(group.primary_finding),
        }
        if self.include_members:
            data["findings"] = [self._format_finding(f) for f in group.findings]
        return data

    def _format_finding(self, finding: Finding) -> dict[str, Any]:
        data = finding.model_dump(mode="json")
        # Remove empty values for cleaner output
        return {k: v for k, v in data.items() if v not in (None, [], "")}

    def _json_serializer(self, obj: Any) -> Any:
        """Custom JSON serializer for non-standard types."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
