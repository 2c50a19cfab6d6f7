"""Assembly of per-finding enrichment from KEV and CVE detail sources."""

from cribrum.enrichment.kev import KEVCatalog
from cribrum.logging import get_logger
from cribrum.models.enrichment import CVEDetails, FindingEnrichment, KEVEntry
from cribrum.models.finding import Finding

logger = get_logger("enrichment.provider")


class EnrichmentProvider:
    """
    Builds FindingEnrichment records for findings.

    Combines a KEV catalog and a map of CVE details keyed by CVE ID. The
    engine only ever consumes the resulting FindingEnrichment values; it
    never looks anything up itself.
    """

    def __init__(
        self,
        kev_catalog: KEVCatalog | None = None,
        cve_details: dict[str, CVEDetails] | None = None,
        overrides: dict[str, FindingEnrichment] | None = None,
    ):
        """
        Initialize the provider.

        Args:
            kev_catalog: Known-exploited catalog
            cve_details: CVE details keyed by CVE ID
            overrides: Enrichment supplied directly per finding id; wins
                over anything derived from the catalog and CVE details
        """
        self.kev_catalog = kev_catalog or KEVCatalog()
        self.cve_details = {k.upper(): v for k, v in (cve_details or {}).items()}
        self.overrides = overrides or {}

    def kev_entry_for(self, cve_ids: list[str]) -> KEVEntry | None:
        """Pick the KEV entry of a CVE list, preferring ransomware-linked entries."""
        entries = list(self.kev_catalog.statuses(cve_ids).values())
        if not entries:
            return None
        for entry in entries:
            if entry.ransomware_use:
                return entry
        return entries[0]

    def cve_details_for(self, cve_ids: list[str]) -> CVEDetails | None:
        """Pick the CVE details with the highest CVSS score."""
        best: CVEDetails | None = None
        for cve_id in cve_ids:
            details = self.cve_details.get(cve_id.upper())
            if details is None:
                continue
            if best is None or (details.cvss_score or 0.0) > (best.cvss_score or 0.0):
                best = details
        return best

    def for_finding(self, finding: Finding) -> FindingEnrichment | None:
        """Enrichment of one finding, or None when nothing is known about it."""
        if finding.id in self.overrides:
            return self.overrides[finding.id]

        cve_ids = finding.cve_ids()
        if not cve_ids:
            return None

        kev_entry = self.kev_entry_for(cve_ids)
        cve_details = self.cve_details_for(cve_ids)
        if kev_entry is None and cve_details is None:
            return None
        return FindingEnrichment(cve_details=cve_details, kev_entry=kev_entry)

    def build(self, findings: list[Finding]) -> dict[str, FindingEnrichment]:
        """Enrichment for every finding that has any, keyed by finding id."""
        enrichment: dict[str, FindingEnrichment] = {}
        for finding in findings:
            record = self.for_finding(finding)
            if record is not None:
                enrichment[finding.id] = record

        logger.debug(f"Enriched {len(enrichment)} of {len(findings)} findings")
        return enrichment
