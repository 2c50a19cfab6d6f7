"""Tests for loading findings and enrichment files."""

import json

import pytest

from cribrum.loader import (
    LoadError,
    load_cve_details,
    load_enrichment,
    load_findings,
    load_findings_from_files,
    load_kev_catalog,
)

NUCLEI_RECORD = {
    "template": "http/cves/2021/CVE-2021-44228.yaml",
    "template-id": "CVE-2021-44228",
    "template-path": "/root/nuclei-templates/http/cves/2021/CVE-2021-44228.yaml",
    "info": {
        "name": "Apache Log4j2 Remote Code Injection",
        "author": ["melbadry9", "dhiyaneshDK"],
        "tags": ["cve", "cve2021", "rce", "log4j", "kev"],
        "description": "Apache Log4j2 JNDI features do not protect against attacker-controlled endpoints.",
        "reference": ["https://logging.apache.org/log4j/2.x/security.html"],
        "severity": "critical",
        "remediation": "Upgrade to Log4j 2.17.1 or later.",
    },
    "type": "http",
    "host": "https://vpn.example.com",
    "matched-at": "https://vpn.example.com/api/login",
    "extracted-results": ["jndi"],
    "matcher-name": "header",
    "ip": "203.0.113.10",
    "timestamp": "2024-01-15T10:30:00.123456Z",
    "matcher-status": True,
}

STORE_RECORD = {
    "id": "f-100",
    "templateId": "exposed-panel",
    "info": {"name": "Admin Panel", "severity": "medium", "tags": "panel,exposure"},
    "host": "https://admin.example.com",
    "matchedAt": "https://admin.example.com/login",
    "sourceFile": "scan-a.jsonl",
}


def _write_jsonl(path, records) -> None:
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n")


class TestLoadFindings:
    """Tests for load_findings."""

    def test_json_array(self, tmp_path):
        path = tmp_path / "findings.json"
        path.write_text(json.dumps([STORE_RECORD, {"template_id": "t2", "host": "h"}]))

        findings = load_findings(path)

        assert [f.template_id for f in findings] == ["exposed-panel", "t2"]

    def test_findings_wrapper_object(self, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(json.dumps({"findings": [STORE_RECORD]}))
        assert len(load_findings(path)) == 1

    def test_single_object(self, tmp_path):
        path = tmp_path / "one.json"
        path.write_text(json.dumps(NUCLEI_RECORD))
        assert len(load_findings(path)) == 1

    def test_nuclei_jsonl(self, tmp_path):
        path = tmp_path / "nuclei.jsonl"
        _write_jsonl(path, [NUCLEI_RECORD, dict(NUCLEI_RECORD, host="https://b.example.com")])

        findings = load_findings(path)

        assert len(findings) == 2
        finding = findings[0]
        assert finding.template_id == "CVE-2021-44228"
        assert finding.name == "Apache Log4j2 Remote Code Injection"
        assert finding.severity == "critical"
        assert finding.matched_at == "https://vpn.example.com/api/login"
        assert finding.extracted_results == ["jndi"]
        assert finding.matcher_name == "header"
        assert finding.author == ["melbadry9", "dhiyaneshDK"]
        assert "log4j" in finding.tags
        assert finding.timestamp.year == 2024
        assert finding.cve_ids() == ["CVE-2021-44228"]

    def test_store_record_shape(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps([STORE_RECORD]))

        finding = load_findings(path)[0]

        assert finding.id == "f-100"
        assert finding.name == "Admin Panel"
        assert finding.tags == ["panel", "exposure"]
        assert finding.source_file == "scan-a.jsonl"

    def test_source_file_defaults_to_file_name(self, tmp_path):
        path = tmp_path / "january.jsonl"
        _write_jsonl(path, [NUCLEI_RECORD])
        assert load_findings(path)[0].source_file == "january.jsonl"

    def test_explicit_source_file(self, tmp_path):
        path = tmp_path / "january.jsonl"
        _write_jsonl(path, [NUCLEI_RECORD])
        assert load_findings(path, source_file="scan-1")[0].source_file == "scan-1"

    def test_invalid_records_skipped(self, tmp_path):
        path = tmp_path / "mixed.jsonl"
        path.write_text(
            json.dumps(NUCLEI_RECORD)
            + "\nnot json at all\n"
            + json.dumps({"host": "missing-template-id"})
            + "\n"
            + json.dumps(["not", "a", "record"])
            + "\n"
        )

        findings = load_findings(path)

        assert len(findings) == 1

    def test_unknown_severity_maps_to_unknown(self, tmp_path):
        path = tmp_path / "f.json"
        path.write_text(json.dumps([{"template_id": "t", "host": "h", "severity": "urgent"}]))
        assert load_findings(path)[0].severity == "unknown"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.jsonl"
        path.write_text("")
        assert load_findings(path) == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError) as exc_info:
            load_findings(tmp_path / "missing.json")
        assert exc_info.value.file_path == tmp_path / "missing.json"

    def test_malformed_json_array(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text('[{"template_id": "t"')
        with pytest.raises(LoadError):
            load_findings(path)

    def test_scalar_json(self, tmp_path):
        path = tmp_path / "scalar.json"
        path.write_text("42")
        with pytest.raises(LoadError):
            load_findings(path)

    def test_multiple_files(self, tmp_path):
        first = tmp_path / "a.jsonl"
        second = tmp_path / "b.jsonl"
        _write_jsonl(first, [NUCLEI_RECORD])
        _write_jsonl(second, [NUCLEI_RECORD, NUCLEI_RECORD])

        findings = load_findings_from_files([first, second])

        assert [f.source_file for f in findings] == ["a.jsonl", "b.jsonl", "b.jsonl"]


class TestLoadEnrichmentFiles:
    """Tests for KEV, CVE detail and enrichment loaders."""

    def test_load_kev_catalog(self, tmp_path):
        path = tmp_path / "kev.json"
        path.write_text(
            json.dumps(
                {
                    "catalogVersion": "2024.01.01",
                    "vulnerabilities": [
                        {"cveID": "CVE-2021-44228", "dueDate": "2021-12-24"},
                        {"cveID": "CVE-2023-4966", "dueDate": "2023-11-08"},
                    ],
                }
            )
        )

        catalog = load_kev_catalog(path)

        assert len(catalog) == 2
        assert "CVE-2023-4966" in catalog

    def test_load_kev_catalog_rejects_list(self, tmp_path):
        path = tmp_path / "kev.json"
        path.write_text("[]")
        with pytest.raises(LoadError):
            load_kev_catalog(path)

    def test_load_cve_details_nvd_response(self, tmp_path):
        path = tmp_path / "nvd.json"
        path.write_text(
            json.dumps(
                {
                    "vulnerabilities": [
                        {
                            "cve": {
                                "id": "CVE-2023-4966",
                                "metrics": {
                                    "cvssMetricV31": [
                                        {"cvssData": {"version": "3.1", "baseScore": 9.4}}
                                    ]
                                },
                            }
                        },
                        {
                            "cve": {
                                "id": "CVE-2021-44228",
                                "references": [{"url": "https://x", "tags": ["Exploit"]}],
                            }
                        },
                    ]
                }
            )
        )

        details = load_cve_details(path)

        assert set(details) == {"CVE-2023-4966", "CVE-2021-44228"}
        assert details["CVE-2023-4966"].cvss_score == 9.4
        assert details["CVE-2021-44228"].exploit_available

    def test_load_cve_details_mapped_records(self, tmp_path):
        path = tmp_path / "cves.json"
        path.write_text(
            json.dumps(
                {
                    "cve-2024-0001": {
                        "id": "cve-2024-0001",
                        "cvss": {"score": 7.5},
                        "exploit_available": True,
                    },
                    "bad": {"cvss": {"score": 99}},
                }
            )
        )

        details = load_cve_details(path)

        assert list(details) == ["CVE-2024-0001"]
        assert details["CVE-2024-0001"].cvss_score == 7.5

    def test_load_enrichment(self, tmp_path):
        path = tmp_path / "enrichment.json"
        path.write_text(
            json.dumps(
                {
                    "f1": {
                        "kev_entry": {"cve_id": "CVE-2023-4966", "due_date": "2023-11-08"},
                        "is_internet_facing": True,
                    },
                    "f2": {"cve_details": {"id": "CVE-2024-0001", "cvss": {"score": 5.0}}},
                    "f3": {"kev_entry": {"cve_id": "missing due date"}},
                }
            )
        )

        enrichment = load_enrichment(path)

        assert set(enrichment) == {"f1", "f2"}
        assert enrichment["f1"].kev_entry.cve_id == "CVE-2023-4966"
        assert enrichment["f1"].is_internet_facing is True
        assert enrichment["f2"].cvss_score == 5.0

    def test_load_enrichment_rejects_list(self, tmp_path):
        path = tmp_path / "enrichment.json"
        path.write_text("[]")
        with pytest.raises(LoadError):
            load_enrichment(path)
