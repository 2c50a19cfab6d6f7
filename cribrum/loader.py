"""Loading of finding and enrichment files."""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cribrum.enrichment.kev import KEVCatalog
from cribrum.logging import get_logger
from cribrum.models.enrichment import CVEDetails, FindingEnrichment
from cribrum.models.finding import Finding

logger = get_logger("loader")


class LoadError(Exception):
    """Raised when an input file cannot be read."""

    def __init__(self, message: str, file_path: Path | None = None):
        self.file_path = file_path
        super().__init__(f"{file_path}: {message}" if file_path else message)


def _read_json(file_path: Path) -> Any:
    try:
        with open(file_path, "r") as f:
            return json.load(f)
    except OSError as e:
        raise LoadError(f"Failed to read: {e}", file_path) from e
    except json.JSONDecodeError as e:
        raise LoadError(f"Invalid JSON: {e}", file_path) from e


def _read_records(file_path: Path) -> list[Any]:
    """Read a JSON array, a ``{"findings": [...]}`` object or JSONL."""
    try:
        with open(file_path, "r") as f:
            content = f.read()
    except OSError as e:
        raise LoadError(f"Failed to read: {e}", file_path) from e

    if not content.strip():
        return []

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        if content.lstrip().startswith("["):
            raise LoadError(f"Invalid JSON: {e}", file_path) from e
        return _read_jsonl(file_path, content)

    if isinstance(data, dict):
        findings = data.get("findings")
        return findings if isinstance(findings, list) else [data]
    if not isinstance(data, list):
        raise LoadError("Expected a list of finding records", file_path)
    return data


def _read_jsonl(file_path: Path, content: str) -> list[Any]:
    records: list[Any] = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping invalid JSON on line {line_number} of {file_path}: {e}")
    return records


def load_findings(file_path: Path, source_file: str | None = None) -> list[Finding]:
    """
    Load finding records from a JSON or JSONL file.

    Records that do not validate as findings are skipped with a warning.

    Args:
        file_path: File to load
        source_file: Scan association stamped on findings that carry none
            (defaults to the file name)

    Returns:
        List of findings

    Raises:
        LoadError: If the file cannot be read or is not JSON
    """
    file_path = Path(file_path)
    source_file = source_file or file_path.name

    findings: list[Finding] = []
    skipped = 0
    for index, record in enumerate(_read_records(file_path)):
        if not isinstance(record, dict):
            skipped += 1
            continue
        try:
            finding = Finding.from_record(record)
        except ValidationError as e:
            logger.warning(f"Skipping invalid record {index} in {file_path}: {e.error_count()} errors")
            skipped += 1
            continue
        if finding.source_file is None:
            finding.source_file = source_file
        findings.append(finding)

    if skipped:
        logger.warning(f"Skipped {skipped} invalid records in {file_path}")
    logger.info(f"Loaded {len(findings)} findings from {file_path}")
    return findings


def load_findings_from_files(file_paths: list[Path]) -> list[Finding]:
    findings: list[Finding] = []
    for file_path in file_paths:
        findings.extend(load_findings(file_path))
    return findings


def load_kev_catalog(file_path: Path) -> KEVCatalog:
    """Load a KEV catalog saved in the CISA feed format."""
    file_path = Path(file_path)
    data = _read_json(file_path)
    if not isinstance(data, dict):
        raise LoadError("Expected the CISA KEV feed object", file_path)
    catalog = KEVCatalog.from_feed(data)
    logger.info(f"Loaded {len(catalog)} KEV entries from {file_path}")
    return catalog


def load_cve_details(file_path: Path) -> dict[str, CVEDetails]:
    """
    Load CVE details keyed by CVE ID.

    Accepts a list of records or an object keyed by CVE ID. Each record may
    be an NVD 2.0 record or an already-mapped CVEDetails object.
    """
    file_path = Path(file_path)
    data = _read_json(file_path)
    if isinstance(data, dict) and "vulnerabilities" in data:
        records = [{"cve": item.get("cve", {})} for item in data["vulnerabilities"]]
    elif isinstance(data, dict):
        records = list(data.values())
    elif isinstance(data, list):
        records = data
    else:
        raise LoadError("Expected a list or object of CVE records", file_path)

    details: dict[str, CVEDetails] = {}
    for record in records:
        if not isinstance(record, dict):
            continue
        try:
            if "cve" in record or "descriptions" in record or "metrics" in record:
                parsed = CVEDetails.from_nvd(record)
            else:
                parsed = CVEDetails.model_validate(record)
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping invalid CVE record in {file_path}: {e}")
            continue
        if parsed is not None:
            details[parsed.id] = parsed

    logger.info(f"Loaded details for {len(details)} CVEs from {file_path}")
    return details


def load_enrichment(file_path: Path) -> dict[str, FindingEnrichment]:
    """Load enrichment records keyed by finding id."""
    file_path = Path(file_path)
    data = _read_json(file_path)
    if not isinstance(data, dict):
        raise LoadError("Expected an object keyed by finding id", file_path)

    enrichment: dict[str, FindingEnrichment] = {}
    for finding_id, record in data.items():
        try:
            enrichment[finding_id] = FindingEnrichment.model_validate(record)
        except ValidationError as e:
            logger.warning(f"Skipping invalid enrichment for {finding_id}: {e.error_count()} errors")
    return enrichment
