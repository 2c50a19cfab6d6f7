"""Data models for scan findings and enrichment."""

from cribrum.models.enrichment import CVEDetails, CVSSInfo, FindingEnrichment, KEVEntry
from cribrum.models.enums import (
    DeduplicationStrategy,
    PriorityLabel,
    RiskLevel,
    ScanTrend,
    Severity,
    UrgencyLevel,
    compare_severity,
    severity_rank,
)
from cribrum.models.finding import Finding, FindingGroup, GroupMetadata, Scan, severity_breakdown

__all__ = [
    "Severity",
    "DeduplicationStrategy",
    "PriorityLabel",
    "UrgencyLevel",
    "ScanTrend",
    "RiskLevel",
    "compare_severity",
    "severity_rank",
    "Finding",
    "FindingGroup",
    "GroupMetadata",
    "Scan",
    "severity_breakdown",
    "CVSSInfo",
    "CVEDetails",
    "KEVEntry",
    "FindingEnrichment",
]
