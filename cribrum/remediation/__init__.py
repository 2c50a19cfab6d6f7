"""Risk prioritization, remediation deadlines and host risk."""

from cribrum.remediation.due_date import (
    DueDateRecommendation,
    calculate_due_date,
    calculate_due_date_for_finding,
    get_days_until_due,
    get_relative_time_description,
    get_urgency_label,
    is_overdue,
)
from cribrum.remediation.host_risk import (
    HostRiskData,
    calculate_all_host_risks,
    calculate_host_risk,
    calculate_host_risk_score,
    get_risk_summary_stats,
)
from cribrum.remediation.prioritization import (
    PrioritizationFactors,
    PrioritizationStats,
    PrioritizedFinding,
    RiskScore,
    calculate_risk_score,
    filter_by_priority,
    filter_by_risk_score,
    get_exploitable_findings,
    get_kev_findings,
    get_prioritization_stats,
    get_priority_label,
    get_top_priority_findings,
    group_by_priority,
    is_internet_facing,
    prioritize_findings,
    resolve_enrichment,
)

__all__ = [
    "PrioritizationFactors",
    "PrioritizedFinding",
    "PrioritizationStats",
    "RiskScore",
    "calculate_risk_score",
    "prioritize_findings",
    "get_prioritization_stats",
    "get_priority_label",
    "is_internet_facing",
    "filter_by_risk_score",
    "filter_by_priority",
    "get_kev_findings",
    "get_exploitable_findings",
    "get_top_priority_findings",
    "group_by_priority",
    "resolve_enrichment",
    "DueDateRecommendation",
    "calculate_due_date",
    "calculate_due_date_for_finding",
    "get_days_until_due",
    "is_overdue",
    "get_relative_time_description",
    "get_urgency_label",
    "HostRiskData",
    "calculate_host_risk",
    "calculate_host_risk_score",
    "calculate_all_host_risks",
    "get_risk_summary_stats",
]
