"""Enrichment records supplied alongside findings (CVE details, KEV entries)."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CVSSInfo(BaseModel):
    """CVSS score of a CVE."""

    version: str = "3.1"
    score: float = Field(ge=0.0, le=10.0)
    vector: str | None = None
    severity: str | None = None


class CVEDetails(BaseModel):
    """Enriched details for one CVE, as fetched by an enrichment provider."""

    id: str
    description: str | None = None
    published_date: datetime | None = None
    last_modified_date: datetime | None = None
    cvss: CVSSInfo | None = None
    cwe_ids: list[str] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)
    exploit_available: bool = False
    source: str = "nvd"
    fetched_at: datetime | None = None

    @field_validator("id")
    @classmethod
    def _upper_id(cls, value: str) -> str:
        return value.upper()

    @property
    def cvss_score(self) -> float | None:
        return self.cvss.score if self.cvss else None

    @classmethod
    def from_nvd(cls, payload: dict[str, Any]) -> "CVEDetails | None":
        """
        Map an NVD API 2.0 record to CVEDetails.

        Accepts either a full response (``{"vulnerabilities": [{"cve": ...}]}``)
        or a single ``cve`` object. Returns None when no CVE record is present.
        """
        from cribrum.correlation.identifiers import extract_cwe_ids

        vulnerability = payload
        if "vulnerabilities" in payload:
            items = payload.get("vulnerabilities") or []
            vulnerability = items[0].get("cve") if items else None
        elif "cve" in payload and isinstance(payload["cve"], dict):
            vulnerability = payload["cve"]

        if not vulnerability or not vulnerability.get("id"):
            return None

        description = next(
            (
                d.get("value")
                for d in vulnerability.get("descriptions", [])
                if d.get("lang") == "en"
            ),
            None,
        )

        cvss = None
        metrics = vulnerability.get("metrics", {})
        for metric_key in ("cvssMetricV31", "cvssMetricV30", "cvssMetricV2"):
            entries = metrics.get(metric_key) or []
            if entries and entries[0].get("cvssData"):
                data = entries[0]["cvssData"]
                base_severity = data.get("baseSeverity") or entries[0].get("baseSeverity")
                cvss = CVSSInfo(
                    version=str(data.get("version", "3.1")),
                    score=float(data.get("baseScore", 0.0)),
                    vector=data.get("vectorString"),
                    severity=base_severity.lower() if base_severity else None,
                )
                break

        cwe_ids: list[str] = []
        for weakness in vulnerability.get("weaknesses", []):
            for desc in weakness.get("description", []):
                for cwe in extract_cwe_ids(desc.get("value", "")):
                    if cwe not in cwe_ids:
                        cwe_ids.append(cwe)

        references = []
        exploit_available = False
        for ref in vulnerability.get("references", []):
            if ref.get("url"):
                references.append(ref["url"])
            if "Exploit" in (ref.get("tags") or []):
                exploit_available = True

        return cls(
            id=vulnerability["id"],
            description=description,
            published_date=vulnerability.get("published"),
            last_modified_date=vulnerability.get("lastModified"),
            cvss=cvss,
            cwe_ids=cwe_ids,
            references=references,
            exploit_available=exploit_available,
            source="nvd",
        )


class KEVEntry(BaseModel):
    """One entry of the Known Exploited Vulnerabilities catalog."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    cve_id: str = Field(alias="cveID")
    vendor_project: str = Field(default="", alias="vendorProject")
    product: str = ""
    vulnerability_name: str = Field(default="", alias="vulnerabilityName")
    date_added: date | None = Field(default=None, alias="dateAdded")
    short_description: str = Field(default="", alias="shortDescription")
    required_action: str = Field(default="", alias="requiredAction")
    due_date: date = Field(alias="dueDate")
    known_ransomware_campaign_use: str = Field(default="Unknown", alias="knownRansomwareCampaignUse")
    notes: str = ""

    @field_validator("cve_id")
    @classmethod
    def _upper_id(cls, value: str) -> str:
        return value.upper()

    @property
    def ransomware_use(self) -> bool:
        """True when the catalog marks known ransomware-campaign use."""
        return self.known_ransomware_campaign_use.strip().lower() == "known"


class FindingEnrichment(BaseModel):
    """Everything an enrichment provider knows about one finding."""

    cve_details: CVEDetails | None = None
    kev_entry: KEVEntry | None = None
    # None means "not stated"; callers may fall back to a host heuristic
    is_internet_facing: bool | None = None

    @property
    def cvss_score(self) -> float | None:
        return self.cve_details.cvss_score if self.cve_details else None

    @property
    def exploit_available(self) -> bool:
        return bool(self.cve_details and self.cve_details.exploit_available)
