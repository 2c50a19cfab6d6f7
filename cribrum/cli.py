"""CLI interface for Cribrum - Finding Correlation & Prioritization Engine."""

import sys
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from cribrum import __version__
from cribrum.comparison.scan_comparator import compare_scan_findings
from cribrum.config import CribrumConfig, load_config, merge_cli_with_config
from cribrum.correlation.grouping import get_deduplication_stats, group_findings
from cribrum.correlation.similarity import find_related_findings
from cribrum.enrichment.kev import EnrichmentError, KEVClient
from cribrum.enrichment.provider import EnrichmentProvider
from cribrum.loader import (
    LoadError,
    load_cve_details,
    load_enrichment,
    load_findings,
    load_kev_catalog,
)
from cribrum.logging import setup_logging
from cribrum.models.enrichment import FindingEnrichment
from cribrum.models.enums import severity_rank
from cribrum.models.finding import Finding
from cribrum.output.console_output import ConsoleOutputFormatter
from cribrum.output.json_output import JSONOutputFormatter
from cribrum.remediation.due_date import calculate_due_date_for_finding
from cribrum.remediation.host_risk import calculate_all_host_risks, get_risk_summary_stats
from cribrum.remediation.prioritization import (
    filter_by_risk_score,
    get_prioritization_stats,
    get_top_priority_findings,
    prioritize_findings,
    resolve_enrichment,
)

console = Console()
# Status messages go to stderr so JSON on stdout stays parseable
status_console = Console(stderr=True)


def common_options(func: Callable) -> Callable:
    """Options shared by every analysis command."""
    options = [
        click.option(
            "--config",
            "-c",
            "config_path",
            type=click.Path(exists=True),
            help="Path to configuration file",
        ),
        click.option(
            "--format",
            "-f",
            "output_format",
            type=click.Choice(["json", "console"]),
            default=None,
            help="Output format (default: console)",
        ),
        click.option(
            "--output",
            "-o",
            type=click.Path(),
            help="Output file path for json format (default: stdout)",
        ),
        click.option(
            "--log-level",
            type=click.Choice(["debug", "info", "warning", "error"]),
            default=None,
            help="Logging level",
        ),
        click.option("--verbose", "-v", is_flag=True, help="Verbose output"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def enrichment_options(func: Callable) -> Callable:
    """Options selecting the enrichment sources handed to the engine."""
    options = [
        click.option(
            "--enrichment",
            "enrichment_path",
            type=click.Path(exists=True),
            default=None,
            help="JSON file of enrichment records keyed by finding id",
        ),
        click.option(
            "--kev-catalog",
            type=click.Path(exists=True),
            default=None,
            help="CISA KEV catalog JSON file",
        ),
        click.option(
            "--cve-details",
            type=click.Path(exists=True),
            default=None,
            help="CVE details JSON file (NVD 2.0 records)",
        ),
        click.option(
            "--fetch-kev/--no-fetch-kev",
            default=None,
            help="Download the CISA KEV catalog",
        ),
        click.option(
            "--infer-internet-facing/--no-infer-internet-facing",
            default=None,
            help="Treat http(s) hosts as internet-facing when enrichment is silent",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _settings(config_path: str | None, **overrides: Any) -> CribrumConfig:
    """Load the configuration, apply CLI overrides and set up logging."""
    try:
        base_config = load_config(Path(config_path) if config_path else None)
    except (OSError, ValueError, yaml.YAMLError) as e:
        status_console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    config = merge_cli_with_config(base_config, **overrides)
    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        format_style=config.logging.format,
        console=status_console,
    )
    return config


def _load(files: tuple[str, ...], verbose: bool) -> list[Finding]:
    findings: list[Finding] = []
    for file_path_str in files:
        file_path = Path(file_path_str)
        try:
            loaded = load_findings(file_path)
        except LoadError as e:
            status_console.print(f"[red]Error loading {file_path}: {e}[/red]")
            sys.exit(1)
        findings.extend(loaded)
        if verbose:
            status_console.print(f"  [green]✓[/green] {file_path.name}: {len(loaded)} findings")

    status_console.print(f"[green]Loaded {len(findings)} findings from {len(files)} file(s)[/green]")
    return findings


def _enrichment(
    config: CribrumConfig, findings: list[Finding], enrichment_path: str | None
) -> dict[str, FindingEnrichment]:
    """Assemble per-finding enrichment from the configured sources."""
    settings = config.enrichment
    try:
        overrides = load_enrichment(Path(enrichment_path)) if enrichment_path else {}

        kev_catalog = None
        if settings.kev_catalog:
            kev_catalog = load_kev_catalog(Path(settings.kev_catalog))
        elif settings.fetch_kev:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=status_console,
                transient=True,
            ) as progress:
                progress.add_task("[green]Fetching CISA KEV catalog...", total=None)
                client = KEVClient(cache_ttl=timedelta(hours=settings.kev_cache_ttl_hours))
                kev_catalog = client.get_catalog()

        cve_details = load_cve_details(Path(settings.cve_details)) if settings.cve_details else {}
    except (LoadError, EnrichmentError) as e:
        status_console.print(f"[red]Error loading enrichment: {e}[/red]")
        sys.exit(1)

    provider = EnrichmentProvider(
        kev_catalog=kev_catalog, cve_details=cve_details, overrides=overrides
    )
    return provider.build(findings)


def _emit(
    config: CribrumConfig,
    build_json: Callable[[JSONOutputFormatter], dict[str, Any]],
    print_console: Callable[[ConsoleOutputFormatter], None],
    verbose: bool,
) -> None:
    """Render a result in the configured output format."""
    if config.output.format == "json":
        formatter = JSONOutputFormatter(
            pretty=config.output.pretty, include_members=config.output.include_members
        )
        data = build_json(formatter)
        if not config.output.path:
            click.echo(formatter.format(data))
        else:
            output_path = Path(config.output.path)
            formatter.write(data, output_path)
            status_console.print(f"[green]Results written to {output_path}[/green]")
    else:
        print_console(ConsoleOutputFormatter(console=console, verbose=verbose))


@click.group()
@click.version_option(version=__version__, prog_name="cribrum")
def cli():
    """Cribrum - Group, prioritize and compare scan findings."""
    pass


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True))
@click.option(
    "--strategy",
    "-s",
    type=click.Choice(["exact", "template-host", "template", "cve", "cwe"]),
    default=None,
    help="Grouping strategy (default: exact)",
)
@click.option(
    "--members/--no-members",
    default=None,
    help="List every member finding of a group in JSON output",
)
@common_options
def group(files, strategy, members, config_path, output_format, output, log_level, verbose):
    """
    Group findings into duplicate sets.

    FILES: One or more finding files (JSON array or JSONL)
    """
    config = _settings(
        config_path,
        strategy=strategy,
        output_format=output_format,
        output_path=output,
        include_members=members,
        log_level=log_level,
    )
    findings = _load(files, verbose)
    result = group_findings(findings, config.grouping.strategy)

    status_console.print(
        f"[green]Grouped into {result.unique_groups} groups "
        f"({result.dedup_rate:.1f}% deduplication)[/green]"
    )
    _emit(
        config,
        lambda fmt: fmt.grouping(result),
        lambda fmt: fmt.print_grouping(result),
        verbose,
    )


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True))
@common_options
def duplicates(files, config_path, output_format, output, log_level, verbose):
    """
    Count duplicates under every grouping strategy.

    FILES: One or more finding files (JSON array or JSONL)
    """
    config = _settings(
        config_path, output_format=output_format, output_path=output, log_level=log_level
    )
    findings = _load(files, verbose)
    stats = get_deduplication_stats(findings)

    _emit(
        config,
        lambda fmt: fmt.duplicate_stats(stats, len(findings)),
        lambda fmt: fmt.print_duplicate_stats(stats, len(findings)),
        verbose,
    )


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--finding-id", required=True, help="Id of the finding to find relatives for")
@click.option("--limit", type=click.IntRange(min=0), default=10, show_default=True, help="Maximum suggestions")
@click.option("--min-score", type=click.IntRange(0, 100), default=50, show_default=True,
              help="Minimum similarity score")
@common_options
def related(files, finding_id, limit, min_score, config_path, output_format, output, log_level, verbose):
    """
    Suggest findings similar to one finding.

    FILES: One or more finding files (JSON array or JSONL)
    """
    config = _settings(
        config_path, output_format=output_format, output_path=output, log_level=log_level
    )
    findings = _load(files, verbose)

    target = next((f for f in findings if f.id == finding_id), None)
    if target is None:
        status_console.print(f"[red]Finding not found: {finding_id}[/red]")
        sys.exit(1)

    suggestions = find_related_findings(target, findings, min_score=min_score, limit=limit)
    _emit(
        config,
        lambda fmt: fmt.related(target, suggestions),
        lambda fmt: fmt.print_related(target, suggestions),
        verbose,
    )


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True))
@enrichment_options
@click.option("--top", type=click.IntRange(min=0), default=None, help="Only show the N highest-risk findings")
@click.option("--min-risk-score", type=click.IntRange(0, 100), default=None,
              help="Only show findings scoring at least this much")
@common_options
def prioritize(
    files,
    enrichment_path,
    kev_catalog,
    cve_details,
    fetch_kev,
    infer_internet_facing,
    top,
    min_risk_score,
    config_path,
    output_format,
    output,
    log_level,
    verbose,
):
    """
    Rank findings by risk score.

    FILES: One or more finding files (JSON array or JSONL)
    """
    config = _settings(
        config_path,
        output_format=output_format,
        output_path=output,
        kev_catalog=kev_catalog,
        cve_details=cve_details,
        fetch_kev=fetch_kev,
        infer_internet_facing=infer_internet_facing,
        min_risk_score=min_risk_score,
        log_level=log_level,
    )
    findings = _load(files, verbose)
    enrichment = _enrichment(config, findings, enrichment_path)

    prioritized = prioritize_findings(
        findings,
        enrichment,
        infer_internet_facing=config.prioritization.infer_internet_facing,
    )
    stats = get_prioritization_stats(prioritized)

    shown = filter_by_risk_score(prioritized, config.prioritization.min_risk_score)
    if top is not None:
        shown = get_top_priority_findings(shown, top)

    _emit(
        config,
        lambda fmt: fmt.prioritization(shown, stats),
        lambda fmt: fmt.print_prioritization(shown, stats),
        verbose,
    )


@cli.command(name="due-dates")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True))
@enrichment_options
@common_options
def due_dates(
    files,
    enrichment_path,
    kev_catalog,
    cve_details,
    fetch_kev,
    infer_internet_facing,
    config_path,
    output_format,
    output,
    log_level,
    verbose,
):
    """
    Recommend remediation deadlines.

    FILES: One or more finding files (JSON array or JSONL)
    """
    config = _settings(
        config_path,
        output_format=output_format,
        output_path=output,
        kev_catalog=kev_catalog,
        cve_details=cve_details,
        fetch_kev=fetch_kev,
        infer_internet_facing=infer_internet_facing,
        log_level=log_level,
    )
    findings = _load(files, verbose)
    enrichment = _enrichment(config, findings, enrichment_path)

    recommendations = []
    for finding in findings:
        record = resolve_enrichment(
            finding,
            enrichment.get(finding.id),
            config.prioritization.infer_internet_facing,
        )
        recommendations.append((finding, calculate_due_date_for_finding(finding, record)))

    # Soonest deadline first; findings without a deadline last
    recommendations.sort(
        key=lambda pair: (
            pair[1].days_from_now <= 0,
            pair[1].days_from_now,
            severity_rank(pair[0].severity),
        )
    )

    _emit(
        config,
        lambda fmt: fmt.due_dates(recommendations),
        lambda fmt: fmt.print_due_dates(recommendations),
        verbose,
    )


@cli.command()
@click.argument("baseline", type=click.Path(exists=True))
@click.argument("compare", type=click.Path(exists=True))
@click.option(
    "--show-persisted/--hide-persisted",
    default=None,
    help="Include findings present in both scans",
)
@common_options
def compare(baseline, compare, show_persisted, config_path, output_format, output, log_level, verbose):
    """
    Compare two scans.

    BASELINE: Findings of the earlier scan
    COMPARE: Findings of the later scan
    """
    config = _settings(
        config_path, output_format=output_format, output_path=output, log_level=log_level
    )
    baseline_findings = _load((baseline,), verbose)
    compare_findings = _load((compare,), verbose)

    result = compare_scan_findings(baseline_findings, compare_findings)
    include_persisted = (
        config.comparison.show_persisted if show_persisted is None else show_persisted
    )

    _emit(
        config,
        lambda fmt: fmt.comparison(result, include_persisted=include_persisted),
        lambda fmt: fmt.print_comparison(result, show_persisted=include_persisted),
        verbose,
    )


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True))
@common_options
def hosts(files, config_path, output_format, output, log_level, verbose):
    """
    Rank hosts by aggregate risk.

    FILES: One or more finding files (JSON array or JSONL)
    """
    config = _settings(
        config_path, output_format=output_format, output_path=output, log_level=log_level
    )
    findings = _load(files, verbose)
    host_risks = calculate_all_host_risks(findings)
    summary = get_risk_summary_stats(host_risks)

    _emit(
        config,
        lambda fmt: fmt.host_risks(host_risks, summary),
        lambda fmt: fmt.print_host_risks(host_risks, summary),
        verbose,
    )


if __name__ == "__main__":
    cli()
