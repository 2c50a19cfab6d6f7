"""Console output formatter using rich library."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cribrum.comparison.scan_comparator import ScanComparisonResult
from cribrum.correlation.grouping import GroupingResult
from cribrum.models.enums import SEVERITY_ORDER
from cribrum.models.finding import Finding, FindingGroup
from cribrum.remediation.due_date import DueDateRecommendation, get_urgency_label
from cribrum.remediation.host_risk import HostRiskData, RiskSummaryStats
from cribrum.remediation.prioritization import PrioritizationStats, PrioritizedFinding

MAX_ROWS = 50


def _truncate(value: str, width: int) -> str:
    return value[: width - 3] + "..." if len(value) > width else value


class ConsoleOutputFormatter:
    """Format engine results for console display using rich."""

    SEVERITY_COLORS = {
        "critical": "bright_red",
        "high": "red",
        "medium": "yellow",
        "low": "blue",
        "info": "dim",
        "unknown": "white",
    }

    SEVERITY_ICONS = {
        "critical": "🔴",
        "high": "🟠",
        "medium": "🟡",
        "low": "🔵",
        "info": "⚪",
        "unknown": "⚫",
    }

    PRIORITY_COLORS = {
        "Critical": "bright_red",
        "High": "red",
        "Medium": "yellow",
        "Low": "blue",
        "Informational": "dim",
    }

    TREND_STYLES = {
        "improved": ("green", "📉"),
        "degraded": ("red", "📈"),
        "stable": ("yellow", "➖"),
    }

    RISK_LEVEL_COLORS = {
        "critical": "bright_red",
        "high": "red",
        "medium": "yellow",
        "low": "blue",
        "minimal": "green",
    }

    def __init__(self, console: Console | None = None, verbose: bool = False):
        """
        Initialize the formatter.

        Args:
            console: Rich console instance
            verbose: Show detailed output
        """
        self.console = console or Console()
        self.verbose = verbose

    def _severity_text(self, severity: str, label: str | None = None) -> Text:
        color = self.SEVERITY_COLORS.get(severity, "white")
        icon = self.SEVERITY_ICONS.get(severity, "")
        return Text(f"{icon} {label or severity.upper()}", style=color)

    def _print_overflow(self, total: int) -> None:
        if total > MAX_ROWS:
            self.console.print(f"[dim]... and {total - MAX_ROWS} more[/dim]")

    def print_grouping(self, result: GroupingResult) -> None:
        """Print a grouping result: summary, severity breakdown and groups."""
        summary = Table(title="Grouping Summary", show_header=False, box=None)
        summary.add_column("Metric", style="bold")
        summary.add_column("Value", justify="right")
        summary.add_row("Strategy", result.strategy.value)
        summary.add_row("Total Findings", str(result.total_findings))
        summary.add_row("Unique Groups", str(result.unique_groups))
        summary.add_row("Duplicates Found", str(result.duplicates_found))
        summary.add_row("Deduplication Rate", f"{result.dedup_rate:.1f}%")

        self.console.print(Panel(summary, title="📊 Summary", border_style="blue"))
        self.console.print()

        self._print_severity_breakdown(result.by_severity(), "Groups by Severity")

        table = Table(title="Groups", show_header=True, expand=True)
        table.add_column("Sev", width=4, justify="center")
        table.add_column("Template", ratio=2)
        table.add_column("Primary Location", ratio=3)
        table.add_column("Count", justify="right", width=6)
        table.add_column("Hosts", justify="right", width=6)
        table.add_column("CVEs", width=18)

        for group in result.groups[:MAX_ROWS]:
            primary = group.primary_finding
            sev = group.highest_severity
            cves = group.metadata.cve_ids or []
            cve_text = ", ".join(cves[:2])
            if len(cves) > 2:
                cve_text += f" +{len(cves) - 2}"

            table.add_row(
                Text(self.SEVERITY_ICONS.get(sev, ""), style=self.SEVERITY_COLORS.get(sev, "white")),
                _truncate(primary.template_id, 40),
                _truncate(primary.matched_at or "-", 50),
                str(group.count),
                str(len(group.unique_hosts)),
                cve_text or "-",
            )

        self.console.print(table)
        self._print_overflow(len(result.groups))

        if self.verbose:
            self.console.print("\n[bold]Duplicate Groups:[/bold]\n")
            for group in result.duplicate_groups()[:20]:
                self._print_group(group)

    def _print_severity_breakdown(self, by_severity: dict[str, int], title: str) -> None:
        table = Table(title=title, show_header=True)
        table.add_column("Severity", style="bold")
        table.add_column("Count", justify="right")
        table.add_column("Bar")

        total = sum(by_severity.values()) or 1
        for severity in SEVERITY_ORDER:
            sev = severity.value
            count = by_severity.get(sev, 0)
            color = self.SEVERITY_COLORS.get(sev, "white")
            table.add_row(
                self._severity_text(sev),
                str(count),
                Text("█" * int((count / total) * 30), style=color),
            )

        self.console.print(table)
        self.console.print()

    def _print_group(self, group: FindingGroup) -> None:
        primary = group.primary_finding
        sev = group.highest_severity
        color = self.SEVERITY_COLORS.get(sev, "white")

        content = [f"[bold]Severity:[/bold] [{color}]{sev.upper()}[/{color}]"]
        content.append(f"[bold]Hosts:[/bold] {', '.join(group.unique_hosts)}")
        if group.metadata.cve_ids:
            content.append(f"[bold]CVEs:[/bold] {', '.join(group.metadata.cve_ids)}")
        if group.metadata.cwe_ids:
            content.append(f"[bold]CWEs:[/bold] {', '.join(group.metadata.cwe_ids)}")
        content.append("\n[bold]Members:[/bold]")
        for finding in group.findings:
            marker = "★" if finding.id == primary.id else "-"
            content.append(f"  {marker} {finding.matched_at} [dim]({finding.severity})[/dim]")

        self.console.print(
            Panel(
                "\n".join(content),
                title=f"{self.SEVERITY_ICONS.get(sev, '')} [{color}]{primary.name}[/{color}]",
                subtitle=f"[dim]{group.count} findings[/dim]",
                border_style=color,
            )
        )
        self.console.print()

    def print_duplicate_stats(self, stats: dict[str, int], total_findings: int) -> None:
        """Print duplicate counts under every grouping strategy."""
        table = Table(title=f"Duplicates by Strategy ({total_findings} findings)", show_header=True)
        table.add_column("Strategy", style="bold")
        table.add_column("Duplicates", justify="right")
        table.add_column("Rate", justify="right")

        for strategy, duplicates in stats.items():
            rate = (duplicates / total_findings * 100) if total_findings else 0.0
            table.add_row(strategy, str(duplicates), f"{rate:.1f}%")

        self.console.print(table)

    def print_related(self, target: Finding, related: list[tuple[Finding, int]]) -> None:
        """Print findings similar to a target finding."""
        self.console.print(
            Panel(
                f"[bold]{target.name}[/bold]\n{target.matched_at}",
                title=f"🔗 Related to {target.id}",
                border_style="blue",
            )
        )
        if not related:
            self.console.print("[dim]No related findings[/dim]")
            return

        table = Table(show_header=True, expand=True)
        table.add_column("Score", justify="right", width=6)
        table.add_column("Sev", width=10)
        table.add_column("Template", ratio=2)
        table.add_column("Location", ratio=3)

        for finding, score in related:
            table.add_row(
                f"{score}%",
                self._severity_text(finding.severity),
                _truncate(finding.template_id, 40),
                _truncate(finding.matched_at, 50),
            )
        self.console.print(table)

    def print_prioritization(
        self, prioritized: list[PrioritizedFinding], stats: PrioritizationStats
    ) -> None:
        """Print a prioritized finding list with its summary."""
        summary = Table(show_header=False, box=None)
        summary.add_column("Metric", style="bold")
        summary.add_column("Value", justify="right")
        summary.add_row("Total Findings", str(stats.total))
        summary.add_row("Average Score", str(stats.avg_score))
        summary.add_row("Score Range", f"{stats.lowest_score}-{stats.highest_score}")
        summary.add_row("Known Exploited", str(stats.with_kev))
        summary.add_row("Exploit Available", str(stats.with_exploit))
        for label, count in stats.by_priority.items():
            summary.add_row(
                Text(label, style=self.PRIORITY_COLORS.get(label, "white")), str(count)
            )
        self.console.print(Panel(summary, title="🎯 Prioritization", border_style="blue"))
        self.console.print()

        table = Table(title="Prioritized Findings", show_header=True, expand=True)
        table.add_column("#", justify="right", width=4)
        table.add_column("Score", justify="right", width=6)
        table.add_column("Priority", width=14)
        table.add_column("Template", ratio=2)
        table.add_column("Location", ratio=3)
        if self.verbose:
            table.add_column("Factors", ratio=2)

        for item in prioritized[:MAX_ROWS]:
            row = [
                str(item.priority_rank),
                str(item.risk_score),
                Text(item.priority_label, style=self.PRIORITY_COLORS.get(item.priority_label, "white")),
                _truncate(item.finding.template_id, 40),
                _truncate(item.finding.matched_at, 50),
            ]
            if self.verbose:
                f = item.factors
                row.append(
                    f"sev {f.base_severity_score} cvss {f.cvss_boost} kev {f.kev_boost} "
                    f"exp {f.exploit_boost} net {f.internet_facing_boost}"
                )
            table.add_row(*row)

        self.console.print(table)
        self._print_overflow(len(prioritized))

    def print_due_dates(self, recommendations: list[tuple[Finding, DueDateRecommendation]]) -> None:
        """Print remediation deadlines."""
        table = Table(title="Remediation Due Dates", show_header=True, expand=True)
        table.add_column("Sev", width=10)
        table.add_column("Template", ratio=2)
        table.add_column("Location", ratio=2)
        table.add_column("Due", width=12)
        table.add_column("Days", justify="right", width=5)
        table.add_column("Urgency", width=10)
        if self.verbose:
            table.add_column("Factors", ratio=3)

        for finding, rec in recommendations[:MAX_ROWS]:
            row = [
                self._severity_text(finding.severity),
                _truncate(finding.template_id, 40),
                _truncate(finding.matched_at, 40),
                rec.recommended_date.date().isoformat() if rec.days_from_now else "-",
                str(rec.days_from_now),
                get_urgency_label(rec.urgency_level),
            ]
            if self.verbose:
                row.append("\n".join(rec.factors))
            table.add_row(*row)

        self.console.print(table)
        self._print_overflow(len(recommendations))

    def print_comparison(self, result: ScanComparisonResult, show_persisted: bool = False) -> None:
        """Print a scan comparison."""
        stats = result.statistics
        color, icon = self.TREND_STYLES.get(stats.trend, ("white", ""))

        summary = Table(show_header=False, box=None)
        summary.add_column("Metric", style="bold")
        summary.add_column("Value", justify="right")
        summary.add_row("New", Text(str(stats.new_count), style="red"))
        summary.add_row("Resolved", Text(str(stats.resolved_count), style="green"))
        summary.add_row("Persisted", str(stats.persisted_count))
        summary.add_row("Trend", Text(f"{icon} {stats.trend.upper()}", style=color))
        self.console.print(Panel(summary, title="🔍 Scan Comparison", border_style=color))
        self.console.print()

        sections = [("New Findings", result.new_findings), ("Resolved Findings", result.resolved_findings)]
        if show_persisted:
            sections.append(("Persisted Findings", result.persisted_findings))

        for title, findings in sections:
            if not findings:
                continue
            table = Table(title=f"{title} ({len(findings)})", show_header=True, expand=True)
            table.add_column("Sev", width=10)
            table.add_column("Template", ratio=2)
            table.add_column("Host", ratio=3)
            for finding in findings[:MAX_ROWS]:
                table.add_row(
                    self._severity_text(finding.severity),
                    _truncate(finding.template_id, 40),
                    _truncate(finding.host, 50),
                )
            self.console.print(table)
            self._print_overflow(len(findings))
            self.console.print()

    def print_host_risks(self, host_risks: list[HostRiskData], summary: RiskSummaryStats) -> None:
        """Print the per-host risk table."""
        overview = Table(show_header=False, box=None)
        overview.add_column("Metric", style="bold")
        overview.add_column("Value", justify="right")
        overview.add_row("Hosts", str(len(host_risks)))
        overview.add_row("Average Risk", str(summary.average_risk_score))
        for level in ("critical", "high", "medium", "low", "minimal"):
            overview.add_row(
                Text(f"{level.capitalize()} Risk", style=self.RISK_LEVEL_COLORS[level]),
                str(getattr(summary, f"{level}_risk_hosts")),
            )
        self.console.print(Panel(overview, title="🖥️ Host Risk", border_style="blue"))
        self.console.print()

        table = Table(title="Hosts by Risk", show_header=True, expand=True)
        table.add_column("Host", ratio=3)
        table.add_column("Score", justify="right", width=6)
        table.add_column("Level", width=10)
        table.add_column("Findings", justify="right", width=8)
        table.add_column("C/H/M/L", width=14)

        for host in host_risks[:MAX_ROWS]:
            b = host.severity_breakdown
            table.add_row(
                _truncate(host.host or "-", 60),
                str(host.risk_score),
                Text(host.risk_level.upper(), style=self.RISK_LEVEL_COLORS.get(host.risk_level, "white")),
                str(host.total_findings),
                f"{b['critical']}/{b['high']}/{b['medium']}/{b['low']}",
            )

        self.console.print(table)
        self._print_overflow(len(host_risks))
