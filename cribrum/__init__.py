"""Cribrum - Group, prioritize and compare scan findings."""

__version__ = "0.1.0"
__title__ = "Cribrum"

# Public API exports
from cribrum.comparison import (
    ScanComparisonResult,
    compare_scan_findings,
    compare_scans,
    create_scan,
)
from cribrum.correlation import (
    GroupingEngine,
    GroupingResult,
    calculate_similarity,
    detect_duplicates,
    find_exact_duplicates,
    find_related_findings,
    get_duplicates_for,
    group_findings,
    merge_duplicates,
)
from cribrum.enrichment import EnrichmentError, EnrichmentProvider, KEVCatalog, KEVClient
from cribrum.loader import LoadError, load_findings
from cribrum.models import (
    CVEDetails,
    DeduplicationStrategy,
    Finding,
    FindingEnrichment,
    FindingGroup,
    KEVEntry,
    PriorityLabel,
    Scan,
    ScanTrend,
    Severity,
    UrgencyLevel,
    compare_severity,
)
from cribrum.output import ConsoleOutputFormatter, JSONOutputFormatter
from cribrum.remediation import (
    DueDateRecommendation,
    PrioritizedFinding,
    calculate_all_host_risks,
    calculate_due_date,
    calculate_risk_score,
    get_prioritization_stats,
    prioritize_findings,
)

__all__ = [
    # Version info
    "__version__",
    "__title__",
    # Models
    "Finding",
    "FindingGroup",
    "Scan",
    "Severity",
    "DeduplicationStrategy",
    "PriorityLabel",
    "UrgencyLevel",
    "ScanTrend",
    "CVEDetails",
    "KEVEntry",
    "FindingEnrichment",
    "compare_severity",
    # Grouping and similarity
    "GroupingEngine",
    "GroupingResult",
    "group_findings",
    "find_exact_duplicates",
    "detect_duplicates",
    "merge_duplicates",
    "get_duplicates_for",
    "calculate_similarity",
    "find_related_findings",
    # Remediation
    "PrioritizedFinding",
    "calculate_risk_score",
    "prioritize_findings",
    "get_prioritization_stats",
    "DueDateRecommendation",
    "calculate_due_date",
    "calculate_all_host_risks",
    # Comparison
    "ScanComparisonResult",
    "compare_scan_findings",
    "compare_scans",
    "create_scan",
    # Enrichment and loading
    "EnrichmentError",
    "EnrichmentProvider",
    "KEVCatalog",
    "KEVClient",
    "LoadError",
    "load_findings",
    # Output
    "ConsoleOutputFormatter",
    "JSONOutputFormatter",
]
