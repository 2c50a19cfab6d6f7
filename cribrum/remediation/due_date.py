"""Remediation due-date recommendation."""

import math
from datetime import date, datetime, time, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field

from cribrum.models.enrichment import CVEDetails, FindingEnrichment, KEVEntry
from cribrum.models.enums import Severity, UrgencyLevel
from cribrum.models.finding import Finding

# Default remediation windows by severity (in days); info has no deadline
SEVERITY_DAYS: dict[Severity, int] = {
    Severity.CRITICAL: 7,
    Severity.HIGH: 14,
    Severity.MEDIUM: 30,
    Severity.LOW: 90,
    Severity.INFO: 0,
    Severity.UNKNOWN: 30,
}

KEV_OVERDUE_DAYS = 3
RANSOMWARE_MAX_DAYS = 3
CVSS_CRITICAL_THRESHOLD = 9.0
CVSS_CRITICAL_MAX_DAYS = 7
CVSS_HIGH_THRESHOLD = 7.0
CVSS_HIGH_MAX_DAYS = 14
EXPLOIT_FACTOR = 0.5
INTERNET_FACING_FACTOR = 0.75
CRITICAL_MAX_DAYS = 7

URGENCY_DESCRIPTIONS: dict[UrgencyLevel, str] = {
    UrgencyLevel.IMMEDIATE: "Requires immediate action (within 72 hours)",
    UrgencyLevel.URGENT: "High priority - address within 7 days",
    UrgencyLevel.STANDARD: "Normal priority - follow standard SLA",
    UrgencyLevel.ROUTINE: "Low priority - address when convenient",
    UrgencyLevel.NONE: "Informational - no remediation deadline",
}

_SECONDS_PER_DAY = 24 * 60 * 60


class DueDateRecommendation(BaseModel):
    """A recommended remediation deadline and the audit trail behind it."""

    recommended_date: datetime
    days_from_now: int
    urgency_level: UrgencyLevel
    reasoning: str
    factors: list[str] = Field(default_factory=list)

    model_config = ConfigDict(use_enum_values=True)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_datetime(value: date | datetime) -> datetime:
    """Dates are taken as UTC midnight; naive datetimes as UTC."""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def get_days_until_due(target: date | datetime, now: datetime | None = None) -> int:
    """Whole days until ``target``, rounded up; negative when overdue."""
    now = _as_datetime(now or _utc_now())
    delta = _as_datetime(target) - now
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def is_overdue(target: date | datetime, now: datetime | None = None) -> bool:
    return get_days_until_due(target, now) < 0


def get_relative_time_description(target: date | datetime, now: datetime | None = None) -> str:
    """Describe a deadline relative to now, e.g. "2 days left" or "3 days overdue"."""
    days = get_days_until_due(target, now)
    if days == 0:
        return "Due today"
    if days == 1:
        return "1 day left"
    if days > 1:
        return f"{days} days left"
    if days == -1:
        return "1 day overdue"
    return f"{abs(days)} days overdue"


def get_urgency_label(level: UrgencyLevel | str) -> str:
    """Human-readable label for an urgency level."""
    return UrgencyLevel(level).value.capitalize()


def calculate_due_date(
    severity: Severity | str,
    kev_entry: KEVEntry | None = None,
    cve_details: CVEDetails | None = None,
    is_internet_facing: bool = False,
    now: datetime | None = None,
) -> DueDateRecommendation:
    """
    Recommend a remediation deadline.

    Starts from the severity baseline, then applies in order: the KEV due
    date (overdue KEV entries force 3 days, ransomware use caps at 3), CVSS
    acceleration, halving for a public exploit, a 25% cut for internet-facing
    assets, and finally the bounds (info has no deadline, critical never
    exceeds 7 days, anything else is at least 1 day). Each adjustment is
    recorded in ``factors``.

    Args:
        severity: Finding severity
        kev_entry: Known-exploited catalog entry for the finding's CVE
        cve_details: CVE details (CVSS score, exploit availability)
        is_internet_facing: Whether the affected asset is exposed
        now: Reference time, defaults to the current UTC time

    Returns:
        DueDateRecommendation
    """
    severity = Severity.from_string(severity)
    now = _as_datetime(now or _utc_now())
    factors: list[str] = []

    days = SEVERITY_DAYS[severity]
    factors.append(f"Base: {severity.value} severity ({days} days)")

    if kev_entry is not None:
        kev_days_left = get_days_until_due(kev_entry.due_date, now)
        if kev_days_left > 0:
            days = min(days, kev_days_left)
            factors.append(f"CISA KEV due date: {kev_entry.due_date.isoformat()}")
        else:
            days = KEV_OVERDUE_DAYS
            factors.append("CISA KEV: OVERDUE - immediate action required")

        if kev_entry.ransomware_use:
            days = min(days, RANSOMWARE_MAX_DAYS)
            factors.append("Known ransomware campaign use")

    if cve_details is not None:
        cvss_score = cve_details.cvss_score
        if cvss_score is not None:
            if cvss_score >= CVSS_CRITICAL_THRESHOLD and days > CVSS_CRITICAL_MAX_DAYS:
                days = CVSS_CRITICAL_MAX_DAYS
                factors.append(f"CVSS {cvss_score}: Critical score acceleration")
            elif cvss_score >= CVSS_HIGH_THRESHOLD and days > CVSS_HIGH_MAX_DAYS:
                days = CVSS_HIGH_MAX_DAYS
                factors.append(f"CVSS {cvss_score}: High score acceleration")

        if cve_details.exploit_available:
            days = math.floor(days * EXPLOIT_FACTOR)
            factors.append("Known exploit available - timeline reduced by 50%")

    if is_internet_facing and severity != Severity.INFO:
        days = math.floor(days * INTERNET_FACING_FACTOR)
        factors.append("Internet-facing asset - timeline reduced by 25%")

    if severity == Severity.INFO:
        days = 0
    elif severity == Severity.CRITICAL and days > CRITICAL_MAX_DAYS:
        days = CRITICAL_MAX_DAYS
        factors.append(f"Critical severity cap: {CRITICAL_MAX_DAYS} days maximum")
    elif days < 1:
        days = 1
        factors.append("Minimum remediation window: 1 day")

    urgency = UrgencyLevel.from_days(days)
    return DueDateRecommendation(
        recommended_date=now + timedelta(days=days),
        days_from_now=days,
        urgency_level=urgency,
        reasoning=URGENCY_DESCRIPTIONS[urgency],
        factors=factors,
    )


def calculate_due_date_for_finding(
    finding: Finding,
    enrichment: FindingEnrichment | None = None,
    now: datetime | None = None,
) -> DueDateRecommendation:
    """Recommend a deadline for one finding from its enrichment."""
    enrichment = enrichment or FindingEnrichment()
    return calculate_due_date(
        severity=finding.severity,
        kev_entry=enrichment.kev_entry,
        cve_details=enrichment.cve_details,
        is_internet_facing=bool(enrichment.is_internet_facing),
        now=now,
    )
