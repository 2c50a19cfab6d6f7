"""Tests for risk scoring and prioritization."""

from datetime import date

import pytest

from cribrum.models.enrichment import CVEDetails, CVSSInfo, FindingEnrichment, KEVEntry
from cribrum.models.enums import PriorityLabel
from cribrum.models.finding import Finding
from cribrum.remediation.prioritization import (
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
)


def _make_finding(**overrides) -> Finding:
    data = {
        "template_id": "generic-finding",
        "host": "10.0.0.5",
        "severity": "medium",
    }
    data.update(overrides)
    return Finding(**data)


def _kev(ransomware: bool = False) -> KEVEntry:
    return KEVEntry(
        cve_id="CVE-2021-44228",
        vendor_project="Apache",
        product="Log4j2",
        due_date=date(2021, 12, 24),
        known_ransomware_campaign_use="Known" if ransomware else "Unknown",
    )


def _cve(score: float | None = None, exploit: bool = False) -> CVEDetails:
    return CVEDetails(
        id="CVE-2021-44228",
        cvss=CVSSInfo(score=score) if score is not None else None,
        exploit_available=exploit,
    )


class TestCalculateRiskScore:
    """Tests for calculate_risk_score."""

    @pytest.mark.parametrize(
        "severity,expected",
        [
            ("critical", 40),
            ("high", 30),
            ("medium", 20),
            ("low", 10),
            ("info", 0),
            ("unknown", 15),
        ],
    )
    def test_base_severity_only(self, severity, expected):
        risk = calculate_risk_score(_make_finding(severity=severity))
        assert risk.score == expected
        assert risk.factors.base_severity_score == expected

    def test_full_enrichment_clamps_to_100(self):
        enrichment = FindingEnrichment(
            cve_details=_cve(9.8, exploit=True),
            kev_entry=_kev(ransomware=True),
            is_internet_facing=True,
        )

        risk = calculate_risk_score(_make_finding(severity="critical"), enrichment)

        assert risk.factors.base_severity_score == 40
        assert risk.factors.cvss_boost == 20
        assert risk.factors.kev_boost == 25
        assert risk.factors.exploit_boost == 15
        assert risk.factors.internet_facing_boost == 5
        assert risk.factors.total == 105
        assert risk.score == 100
        assert get_priority_label(risk.score) == PriorityLabel.CRITICAL

    def test_cvss_boost_rounds_half_up(self):
        enrichment = FindingEnrichment(cve_details=_cve(7.25))
        risk = calculate_risk_score(_make_finding(severity="low"), enrichment)
        # 7.25 * 2 = 14.5 -> 15
        assert risk.factors.cvss_boost == 15
        assert risk.score == 25

    def test_kev_without_ransomware(self):
        enrichment = FindingEnrichment(kev_entry=_kev())
        risk = calculate_risk_score(_make_finding(severity="high"), enrichment)
        assert risk.factors.kev_boost == 20
        assert risk.score == 50

    def test_missing_cvss_is_no_boost(self):
        enrichment = FindingEnrichment(cve_details=_cve(None, exploit=True))
        risk = calculate_risk_score(_make_finding(), enrichment)
        assert risk.factors.cvss_boost == 0
        assert risk.factors.exploit_boost == 15
        assert risk.score == 35

    def test_exposure_not_stated_is_no_boost(self):
        risk = calculate_risk_score(_make_finding(), FindingEnrichment())
        assert risk.factors.internet_facing_boost == 0
        assert risk.score == 20


class TestPrioritizeFindings:
    """Tests for prioritize_findings."""

    def test_ranks_by_score(self):
        findings = [
            _make_finding(id="low", severity="low"),
            _make_finding(id="crit", severity="critical"),
            _make_finding(id="med", severity="medium"),
        ]

        prioritized = prioritize_findings(findings)

        assert [p.finding.id for p in prioritized] == ["crit", "med", "low"]
        assert [p.priority_rank for p in prioritized] == [1, 2, 3]

    def test_ties_keep_input_order(self):
        findings = [_make_finding(id=str(i)) for i in range(5)]
        prioritized = prioritize_findings(findings)
        assert [p.finding.id for p in prioritized] == ["0", "1", "2", "3", "4"]
        assert [p.priority_rank for p in prioritized] == [1, 2, 3, 4, 5]

    def test_enrichment_lookup_by_id(self):
        findings = [_make_finding(id="plain"), _make_finding(id="kev")]
        enrichment = {"kev": FindingEnrichment(kev_entry=_kev())}

        prioritized = prioritize_findings(findings, enrichment)

        assert prioritized[0].finding.id == "kev"
        assert prioritized[0].risk_score == 40

    def test_infers_internet_facing_from_http_host(self):
        findings = [_make_finding(id="web", host="https://portal.example.com")]

        inferred = prioritize_findings(findings)
        assert inferred[0].factors.internet_facing_boost == 5

        not_inferred = prioritize_findings(findings, infer_internet_facing=False)
        assert not_inferred[0].factors.internet_facing_boost == 0

    def test_explicit_exposure_wins_over_heuristic(self):
        findings = [_make_finding(id="web", host="https://portal.example.com")]
        enrichment = {"web": FindingEnrichment(is_internet_facing=False)}
        prioritized = prioritize_findings(findings, enrichment)
        assert prioritized[0].factors.internet_facing_boost == 0

    def test_scores_within_bounds(self):
        findings = [
            _make_finding(id=str(i), severity=s, host="https://x")
            for i, s in enumerate(["critical", "high", "medium", "low", "info", "unknown"])
        ]
        enrichment = {
            f.id: FindingEnrichment(
                cve_details=_cve(10.0, exploit=True), kev_entry=_kev(True), is_internet_facing=True
            )
            for f in findings
        }
        for p in prioritize_findings(findings, enrichment):
            assert 0 <= p.risk_score <= 100

    @pytest.mark.parametrize("infer", [True, False])
    def test_deterministic(self, infer):
        findings = [
            _make_finding(id="a", severity="high", host="https://portal.example.com"),
            _make_finding(id="b", severity="critical"),
            _make_finding(id="c", severity="high"),
            _make_finding(id="d", severity="low", host="http://intranet"),
        ]
        enrichment = {
            "b": FindingEnrichment(kev_entry=_kev(ransomware=True)),
            "c": FindingEnrichment(cve_details=_cve(7.5, exploit=True)),
        }

        first = prioritize_findings(findings, enrichment, infer_internet_facing=infer)
        second = prioritize_findings(findings, enrichment, infer_internet_facing=infer)

        assert [p.model_dump() for p in first] == [p.model_dump() for p in second]

    def test_is_internet_facing(self):
        assert is_internet_facing(_make_finding(host="HTTP://Example.com"))
        assert not is_internet_facing(_make_finding(host="10.0.0.1:22"))

    def test_empty(self):
        assert prioritize_findings([]) == []


class TestPrioritizationStats:
    """Tests for statistics and filters."""

    def _prioritized(self):
        findings = [
            _make_finding(id="crit", severity="critical"),
            _make_finding(id="high", severity="high"),
            _make_finding(id="low", severity="low"),
            _make_finding(id="info", severity="info"),
        ]
        enrichment = {
            "crit": FindingEnrichment(
                cve_details=_cve(9.8, exploit=True), kev_entry=_kev(True)
            ),
            "high": FindingEnrichment(kev_entry=_kev()),
        }
        # crit: 40+20+25+15 = 100, high: 30+20 = 50, low: 10, info: 0
        return prioritize_findings(findings, enrichment)

    def test_stats(self):
        stats = get_prioritization_stats(self._prioritized())

        assert stats.total == 4
        assert stats.by_priority == {
            "Critical": 1,
            "High": 0,
            "Medium": 1,
            "Low": 0,
            "Informational": 2,
        }
        assert stats.avg_score == 40
        assert stats.highest_score == 100
        assert stats.lowest_score == 0
        assert stats.with_kev == 2
        assert stats.with_exploit == 1

    def test_stats_empty(self):
        stats = get_prioritization_stats([])
        assert stats.total == 0
        assert stats.avg_score == 0
        assert stats.lowest_score == 0
        assert stats.highest_score == 0
        assert sum(stats.by_priority.values()) == 0

    def test_avg_rounds_half_up(self):
        prioritized = prioritize_findings(
            [_make_finding(severity="critical"), _make_finding(severity="unknown")]
        )
        # (40 + 15) / 2 = 27.5
        assert get_prioritization_stats(prioritized).avg_score == 28

    def test_filters(self):
        prioritized = self._prioritized()

        assert [p.finding.id for p in filter_by_risk_score(prioritized, 50)] == ["crit", "high"]
        assert [p.finding.id for p in filter_by_priority(prioritized, ["Informational"])] == [
            "low",
            "info",
        ]
        assert [p.finding.id for p in get_kev_findings(prioritized)] == ["crit", "high"]
        assert [p.finding.id for p in get_exploitable_findings(prioritized)] == ["crit"]
        assert [p.finding.id for p in get_top_priority_findings(prioritized, 1)] == ["crit"]

    def test_group_by_priority_has_every_label(self):
        groups = group_by_priority(self._prioritized())
        assert set(groups) == {label.value for label in PriorityLabel}
        assert [p.finding.id for p in groups["Critical"]] == ["crit"]
        assert groups["High"] == []
