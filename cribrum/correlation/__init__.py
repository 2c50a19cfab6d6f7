"""Grouping, deduplication and similarity of findings."""

from cribrum.correlation.grouping import (
    ALL_STRATEGIES,
    GroupingEngine,
    GroupingResult,
    detect_duplicates,
    find_exact_duplicates,
    get_deduplication_stats,
    get_duplicates_for,
    group_findings,
    group_key,
    merge_duplicates,
    select_primary_finding,
)
from cribrum.correlation.identifiers import extract_cve_ids, extract_cwe_ids
from cribrum.correlation.similarity import calculate_similarity, find_related_findings

__all__ = [
    "ALL_STRATEGIES",
    "GroupingEngine",
    "GroupingResult",
    "group_findings",
    "group_key",
    "select_primary_finding",
    "find_exact_duplicates",
    "detect_duplicates",
    "get_deduplication_stats",
    "merge_duplicates",
    "get_duplicates_for",
    "calculate_similarity",
    "find_related_findings",
    "extract_cve_ids",
    "extract_cwe_ids",
]
