"""CVE and CWE identifier extraction from free text and findings."""

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cribrum.models.finding import Finding

CVE_PATTERN = re.compile(r"CVE-\d{4}-\d+", re.IGNORECASE)
CWE_PATTERN = re.compile(r"CWE-\d+", re.IGNORECASE)


def _unique_upper(matches: Iterable[str]) -> list[str]:
    """Uppercase and de-duplicate matches, keeping first-seen order."""
    seen: dict[str, None] = {}
    for match in matches:
        seen.setdefault(match.upper(), None)
    return list(seen)


def extract_cve_ids(text: str) -> list[str]:
    """Extract unique, uppercased CVE IDs from text."""
    if not text:
        return []
    return _unique_upper(CVE_PATTERN.findall(text))


def extract_cwe_ids(text: str) -> list[str]:
    """Extract unique, uppercased CWE IDs from text."""
    if not text:
        return []
    return _unique_upper(CWE_PATTERN.findall(text))


def identifier_text(findings: "Iterable[Finding]") -> str:
    """
    Build the text that identifiers are extracted from.

    References, tags and the template id of every finding, space-joined.
    """
    parts: list[str] = []
    for finding in findings:
        parts.extend(finding.reference)
        parts.extend(finding.tags)
        parts.append(finding.template_id)
    return " ".join(parts)


def finding_cve_ids(finding: "Finding") -> list[str]:
    """CVE IDs referenced by a finding's references, tags or template id."""
    return extract_cve_ids(identifier_text([finding]))


def finding_cwe_ids(finding: "Finding") -> list[str]:
    """CWE IDs referenced by a finding's references, tags or template id."""
    return extract_cwe_ids(identifier_text([finding]))
