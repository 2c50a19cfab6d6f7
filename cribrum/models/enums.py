"""Enumerations for finding classification, grouping and remediation."""

from enum import Enum


class Severity(str, Enum):
    """Severity levels for scan findings, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: "str | Severity | None") -> "Severity":
        """Convert string to Severity, with fuzzy matching. Anything else is UNKNOWN."""
        if isinstance(value, Severity):
            return value
        if not value or not isinstance(value, str):
            return cls.UNKNOWN
        normalized = value.lower().strip()
        mapping = {
            "critical": cls.CRITICAL,
            "crit": cls.CRITICAL,
            "high": cls.HIGH,
            "medium": cls.MEDIUM,
            "med": cls.MEDIUM,
            "moderate": cls.MEDIUM,
            "low": cls.LOW,
            "info": cls.INFO,
            "informational": cls.INFO,
            "information": cls.INFO,
            "unknown": cls.UNKNOWN,
        }
        return mapping.get(normalized, cls.UNKNOWN)

    @property
    def rank(self) -> int:
        """Return severity rank for sorting (lower = more severe)."""
        return {
            self.CRITICAL: 0,
            self.HIGH: 1,
            self.MEDIUM: 2,
            self.LOW: 3,
            self.INFO: 4,
            self.UNKNOWN: 5,
        }[self]

    @property
    def risk_weight(self) -> int:
        """Return the 0-40 base risk points for this severity.

        UNKNOWN outranks LOW and INFO; an unclassified finding counts as
        moderate risk.
        """
        return {
            self.CRITICAL: 40,
            self.HIGH: 30,
            self.MEDIUM: 20,
            self.LOW: 10,
            self.INFO: 0,
            self.UNKNOWN: 15,
        }[self]


SEVERITY_ORDER: tuple[Severity, ...] = tuple(Severity)


def severity_rank(value: "str | Severity | None") -> int:
    """Rank of any severity-like value; unrecognised values rank as UNKNOWN."""
    return Severity.from_string(value).rank


def compare_severity(a: "str | Severity | None", b: "str | Severity | None") -> int:
    """
    Three-way comparator ordering more severe values first.

    Negative when ``a`` is more severe than ``b``, zero when equal. Usable
    with ``functools.cmp_to_key`` for a descending-by-severity sort.
    """
    return severity_rank(a) - severity_rank(b)


def is_more_severe(a: "str | Severity | None", b: "str | Severity | None") -> bool:
    """True when ``a`` is strictly more severe than ``b``."""
    return compare_severity(a, b) < 0


class DeduplicationStrategy(str, Enum):
    """Key construction rule used by the grouping engine."""

    EXACT = "exact"  # templateId + host + matchedAt (true duplicates)
    TEMPLATE_HOST = "template-host"  # same vulnerability on the same host
    TEMPLATE = "template"  # same vulnerability across hosts
    CVE = "cve"  # same CVE identifier set
    CWE = "cwe"  # same CWE identifier set


class PriorityLabel(str, Enum):
    """Banding of a 0-100 risk score."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFORMATIONAL = "Informational"

    @classmethod
    def from_score(cls, score: int) -> "PriorityLabel":
        """Band a risk score into a priority label."""
        if score >= 80:
            return cls.CRITICAL
        if score >= 60:
            return cls.HIGH
        if score >= 40:
            return cls.MEDIUM
        if score >= 20:
            return cls.LOW
        return cls.INFORMATIONAL


class UrgencyLevel(str, Enum):
    """Remediation urgency tier derived from a day count."""

    IMMEDIATE = "immediate"
    URGENT = "urgent"
    STANDARD = "standard"
    ROUTINE = "routine"
    NONE = "none"

    @classmethod
    def from_days(cls, days: int) -> "UrgencyLevel":
        """Map a remediation window in days to an urgency tier."""
        if days <= 0:
            return cls.NONE
        if days <= 3:
            return cls.IMMEDIATE
        if days <= 7:
            return cls.URGENT
        if days <= 30:
            return cls.STANDARD
        return cls.ROUTINE


class ScanTrend(str, Enum):
    """Overall direction between two scan snapshots."""

    IMPROVED = "improved"
    DEGRADED = "degraded"
    STABLE = "stable"


class RiskLevel(str, Enum):
    """Aggregate risk level of a host."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    MINIMAL = "minimal"
