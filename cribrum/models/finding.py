"""Normalized scan finding model and the groupings built from it."""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cribrum.models.enums import DeduplicationStrategy, Severity

# Record keys used by the upstream findings store (camelCase) and by raw
# nuclei JSONL output (kebab-case), mapped to field names
_RECORD_ALIASES = {
    "template-id": "template_id",
    "template-path": "template_path",
    "template-url": "template_url",
    "matched-at": "matched_at",
    "extracted-results": "extracted_results",
    "matcher-name": "matcher_name",
    "templateId": "template_id",
    "templatePath": "template_path",
    "templateUrl": "template_url",
    "matchedAt": "matched_at",
    "extractedResults": "extracted_results",
    "matcherName": "matcher_name",
    "sourceFile": "source_file",
    "projectId": "project_id",
}

_INFO_FIELDS = ("name", "author", "tags", "description", "severity", "reference", "remediation")


class Finding(BaseModel):
    """One normalized detection record: template + host + match location + severity."""

    # Identity
    id: str = Field(default_factory=lambda: str(uuid4()))
    template_id: str
    template_path: str | None = None
    template_url: str | None = None

    # Classification
    name: str = ""
    author: list[str] = Field(default_factory=list)
    description: str | None = None
    remediation: str | None = None
    severity: Severity = Severity.UNKNOWN
    tags: list[str] = Field(default_factory=list)
    reference: list[str] = Field(default_factory=list)
    type: str = "http"

    # Location
    host: str = ""
    matched_at: str = ""
    ip: str | None = None

    # Evidence
    extracted_results: list[str] = Field(default_factory=list)
    matcher_name: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Scan association
    source_file: str | None = None
    project_id: str | None = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: Any) -> Severity:
        return Severity.from_string(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [t.strip() for t in value.split(",") if t.strip()]
        return value

    @field_validator("author", "reference", "extracted_results", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _fill_defaults(self) -> "Finding":
        if not self.matched_at:
            self.matched_at = self.host
        if not self.name:
            self.name = self.template_id
        return self

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Finding":
        """
        Build a Finding from a stored record.

        Accepts snake_case records as well as the camelCase shape with a
        nested ``info`` block used by the findings store.
        """
        data: dict[str, Any] = {}
        for key, value in record.items():
            if key == "info" and isinstance(value, dict):
                for info_key in _INFO_FIELDS:
                    if info_key in value:
                        data[info_key] = value[info_key]
                continue
            data[_RECORD_ALIASES.get(key, key)] = value
        return cls(**data)

    @property
    def severity_rank(self) -> int:
        """Rank of this finding's severity (0 = critical)."""
        return Severity(self.severity).rank

    def cve_ids(self) -> list[str]:
        """CVE IDs referenced by this finding."""
        from cribrum.correlation.identifiers import finding_cve_ids

        return finding_cve_ids(self)

    def cwe_ids(self) -> list[str]:
        """CWE IDs referenced by this finding."""
        from cribrum.correlation.identifiers import finding_cwe_ids

        return finding_cwe_ids(self)


class GroupMetadata(BaseModel):
    """Identifiers shared by a finding group."""

    cve_ids: list[str] | None = None
    cwe_ids: list[str] | None = None
    template_id: str | None = None


class FindingGroup(BaseModel):
    """A set of findings sharing a grouping key, with one representative."""

    id: str
    key: str
    strategy: DeduplicationStrategy
    findings: list[Finding] = Field(default_factory=list)
    primary_finding: Finding
    count: int
    unique_hosts: list[str] = Field(default_factory=list)
    highest_severity: Severity
    metadata: GroupMetadata = Field(default_factory=GroupMetadata)

    model_config = ConfigDict(use_enum_values=True)

    @property
    def has_duplicates(self) -> bool:
        """True when the group holds more than one finding."""
        return self.count > 1

    @property
    def finding_ids(self) -> list[str]:
        return [f.id for f in self.findings]


class Scan(BaseModel):
    """A labelled snapshot: the findings produced by one scan run."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: str
    name: str
    description: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    findings_count: int = 0
    uploaded_file_ids: list[str] = Field(default_factory=list)
    host_count: int = 0
    severity_breakdown: dict[str, int] = Field(default_factory=dict)


def severity_breakdown(findings: list[Finding]) -> dict[str, int]:
    """Count findings per severity, every severity present."""
    breakdown = {severity.value: 0 for severity in Severity}
    for finding in findings:
        breakdown[Severity.from_string(finding.severity).value] += 1
    return breakdown
