"""Tests for remediation due-date recommendation."""

from datetime import date, datetime, timedelta, timezone

import pytest

from cribrum.models.enrichment import CVEDetails, CVSSInfo, FindingEnrichment, KEVEntry
from cribrum.models.enums import Severity, UrgencyLevel
from cribrum.models.finding import Finding
from cribrum.remediation.due_date import (
    calculate_due_date,
    calculate_due_date_for_finding,
    get_days_until_due,
    get_relative_time_description,
    get_urgency_label,
    is_overdue,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _kev(due: date, ransomware: bool = False) -> KEVEntry:
    return KEVEntry(
        cve_id="CVE-2023-4966",
        due_date=due,
        known_ransomware_campaign_use="Known" if ransomware else "Unknown",
    )


def _cve(score: float | None = None, exploit: bool = False) -> CVEDetails:
    return CVEDetails(
        id="CVE-2023-4966",
        cvss=CVSSInfo(score=score) if score is not None else None,
        exploit_available=exploit,
    )


class TestBaseline:
    """Severity baselines without enrichment."""

    @pytest.mark.parametrize(
        "severity,days,urgency",
        [
            ("critical", 7, UrgencyLevel.URGENT),
            ("high", 14, UrgencyLevel.STANDARD),
            ("medium", 30, UrgencyLevel.STANDARD),
            ("low", 90, UrgencyLevel.ROUTINE),
            ("unknown", 30, UrgencyLevel.STANDARD),
            ("info", 0, UrgencyLevel.NONE),
        ],
    )
    def test_baseline(self, severity, days, urgency):
        rec = calculate_due_date(severity, now=NOW)
        assert rec.days_from_now == days
        assert rec.urgency_level == urgency
        assert rec.recommended_date == NOW + timedelta(days=days)

    def test_high_without_enrichment(self):
        rec = calculate_due_date(Severity.HIGH, now=NOW)
        assert rec.days_from_now == 14
        assert rec.urgency_level == "standard"
        assert rec.factors == ["Base: high severity (14 days)"]
        assert rec.reasoning == "Normal priority - follow standard SLA"


class TestKEV:
    """Known-exploited catalog adjustments."""

    def test_kev_due_date_shortens_window(self):
        rec = calculate_due_date("high", kev_entry=_kev(date(2024, 1, 6)), now=NOW)
        assert rec.days_from_now == 5
        assert "CISA KEV due date: 2024-01-06" in rec.factors

    def test_kev_due_date_never_lengthens_window(self):
        rec = calculate_due_date("high", kev_entry=_kev(date(2024, 6, 1)), now=NOW)
        assert rec.days_from_now == 14

    @pytest.mark.parametrize("due", [date(2023, 12, 1), date(2024, 1, 1)])
    def test_overdue_kev_forces_three_days(self, due):
        rec = calculate_due_date("low", kev_entry=_kev(due), now=NOW)
        assert rec.days_from_now == 3
        assert rec.urgency_level == UrgencyLevel.IMMEDIATE
        assert "CISA KEV: OVERDUE - immediate action required" in rec.factors

    def test_ransomware_caps_at_three_days(self):
        rec = calculate_due_date(
            "medium", kev_entry=_kev(date(2024, 6, 1), ransomware=True), now=NOW
        )
        assert rec.days_from_now == 3
        assert "Known ransomware campaign use" in rec.factors


class TestCVSSAndExploit:
    """CVSS acceleration and exploit availability."""

    def test_critical_cvss_caps_at_seven(self):
        rec = calculate_due_date("low", cve_details=_cve(9.8), now=NOW)
        assert rec.days_from_now == 7
        assert "CVSS 9.8: Critical score acceleration" in rec.factors

    def test_high_cvss_caps_at_fourteen(self):
        rec = calculate_due_date("medium", cve_details=_cve(7.5), now=NOW)
        assert rec.days_from_now == 14
        assert "CVSS 7.5: High score acceleration" in rec.factors

    def test_cvss_cap_not_recorded_when_already_shorter(self):
        rec = calculate_due_date("high", cve_details=_cve(7.5), now=NOW)
        assert rec.days_from_now == 14
        assert rec.factors == ["Base: high severity (14 days)"]

    def test_exploit_halves_window(self):
        rec = calculate_due_date("high", cve_details=_cve(exploit=True), now=NOW)
        assert rec.days_from_now == 7
        assert "Known exploit available - timeline reduced by 50%" in rec.factors


class TestExposureAndBounds:
    """Internet exposure and the final bounds."""

    def test_internet_facing_cuts_a_quarter(self):
        rec = calculate_due_date("medium", is_internet_facing=True, now=NOW)
        assert rec.days_from_now == 22
        assert "Internet-facing asset - timeline reduced by 25%" in rec.factors

    def test_adjustments_compound_in_order(self):
        rec = calculate_due_date(
            "high", cve_details=_cve(exploit=True), is_internet_facing=True, now=NOW
        )
        # 14 -> 7 -> floor(5.25)
        assert rec.days_from_now == 5
        assert len(rec.factors) == 3

    def test_minimum_of_one_day(self):
        rec = calculate_due_date(
            "low",
            kev_entry=_kev(date(2023, 1, 1)),
            cve_details=_cve(exploit=True),
            is_internet_facing=True,
            now=NOW,
        )
        # 90 -> 3 -> 1 -> 0 -> raised to 1
        assert rec.days_from_now == 1
        assert rec.factors[-1] == "Minimum remediation window: 1 day"

    def test_info_never_has_deadline(self):
        rec = calculate_due_date(
            "info",
            kev_entry=_kev(date(2023, 1, 1), ransomware=True),
            cve_details=_cve(10.0, exploit=True),
            is_internet_facing=True,
            now=NOW,
        )
        assert rec.days_from_now == 0
        assert rec.urgency_level == UrgencyLevel.NONE
        assert not any("Internet-facing" in f for f in rec.factors)

    @pytest.mark.parametrize("exposed", [True, False])
    @pytest.mark.parametrize("score", [None, 5.0, 7.5, 9.8])
    def test_critical_never_exceeds_seven(self, exposed, score):
        rec = calculate_due_date(
            "critical",
            kev_entry=_kev(date(2025, 1, 1)),
            cve_details=_cve(score),
            is_internet_facing=exposed,
            now=NOW,
        )
        assert 1 <= rec.days_from_now <= 7

    @pytest.mark.parametrize(
        "severity,kev_due,score,exposed",
        [
            ("critical", date(2024, 1, 10), 9.8, True),
            ("high", None, 7.5, False),
            ("medium", date(2023, 12, 1), None, True),
            ("info", None, None, False),
        ],
    )
    def test_deterministic(self, severity, kev_due, score, exposed):
        kwargs = {
            "kev_entry": _kev(kev_due) if kev_due else None,
            "cve_details": _cve(score, exploit=True),
            "is_internet_facing": exposed,
            "now": NOW,
        }
        first = calculate_due_date(severity, **kwargs)
        second = calculate_due_date(severity, **kwargs)
        assert first.model_dump() == second.model_dump()

    def test_for_finding(self):
        finding = Finding(template_id="citrix-bleed", host="https://vpn.example.com", severity="critical")
        enrichment = FindingEnrichment(kev_entry=_kev(date(2024, 1, 3)), is_internet_facing=True)

        rec = calculate_due_date_for_finding(finding, enrichment, now=NOW)

        # min(7, 2) then floor(2 * 0.75)
        assert rec.days_from_now == 1

    def test_for_finding_without_enrichment(self):
        finding = Finding(template_id="t", host="https://vpn.example.com", severity="medium")
        assert calculate_due_date_for_finding(finding, now=NOW).days_from_now == 30


class TestUrgencyHelpers:
    """Tests for deadline helpers."""

    def test_days_until_due_rounds_up(self):
        assert get_days_until_due(NOW + timedelta(hours=36), now=NOW) == 2
        assert get_days_until_due(NOW - timedelta(days=1), now=NOW) == -1

    def test_date_targets_are_utc_midnight(self):
        assert get_days_until_due(date(2024, 1, 11), now=NOW) == 10

    def test_is_overdue(self):
        assert is_overdue(NOW - timedelta(days=1), now=NOW)
        assert not is_overdue(NOW, now=NOW)

    @pytest.mark.parametrize(
        "offset,text",
        [
            (timedelta(0), "Due today"),
            (timedelta(days=1), "1 day left"),
            (timedelta(days=4), "4 days left"),
            (timedelta(days=-1), "1 day overdue"),
            (timedelta(days=-3), "3 days overdue"),
        ],
    )
    def test_relative_time_description(self, offset, text):
        assert get_relative_time_description(NOW + offset, now=NOW) == text

    def test_urgency_label(self):
        assert get_urgency_label(UrgencyLevel.IMMEDIATE) == "Immediate"
        assert get_urgency_label("routine") == "Routine"
