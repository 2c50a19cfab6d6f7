"""Scan snapshot comparison."""

from cribrum.comparison.scan_comparator import (
    ScanComparisonResult,
    ScanComparisonStatistics,
    calculate_severity_breakdown,
    classify_trend,
    compare_scan_findings,
    compare_scans,
    create_scan,
    get_findings_for_scan,
)

__all__ = [
    "ScanComparisonResult",
    "ScanComparisonStatistics",
    "calculate_severity_breakdown",
    "classify_trend",
    "compare_scan_findings",
    "compare_scans",
    "create_scan",
    "get_findings_for_scan",
]
