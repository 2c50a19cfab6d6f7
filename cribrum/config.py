"""Configuration management for Cribrum."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

StrategyName = Literal["exact", "template-host", "template", "cve", "cwe"]


class GroupingConfig(BaseModel):
    """Grouping engine configuration."""

    model_config = ConfigDict(extra="ignore")

    strategy: StrategyName = "exact"


class PrioritizationConfig(BaseModel):
    """Risk prioritization configuration."""

    model_config = ConfigDict(extra="ignore")

    # Assume exposure for http(s) hosts when enrichment is silent about it
    infer_internet_facing: bool = True
    min_risk_score: int = Field(default=0, ge=0, le=100)


class ComparisonConfig(BaseModel):
    """Scan comparison configuration."""

    model_config = ConfigDict(extra="ignore")

    show_persisted: bool = False


class EnrichmentConfig(BaseModel):
    """Enrichment sources handed to the engine."""

    model_config = ConfigDict(extra="ignore")

    kev_catalog: str | None = None
    cve_details: str | None = None
    fetch_kev: bool = False
    kev_cache_ttl_hours: int = Field(default=24, gt=0)


class OutputConfig(BaseModel):
    """Output configuration."""

    model_config = ConfigDict(extra="ignore")

    format: Literal["json", "console"] = "console"
    path: str | None = None
    pretty: bool = True
    # List every member finding of a group, not just its primary
    include_members: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="ignore")

    level: Literal["debug", "info", "warning", "error"] = "info"
    file: str | None = None
    format: Literal["simple", "detailed"] = "simple"


class CribrumConfig(BaseModel):
    """Main Cribrum configuration."""

    model_config = ConfigDict(extra="ignore")

    grouping: GroupingConfig = Field(default_factory=GroupingConfig)
    prioritization: PrioritizationConfig = Field(default_factory=PrioritizationConfig)
    comparison: ComparisonConfig = Field(default_factory=ComparisonConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Path | None = None) -> CribrumConfig:
    """
    Load configuration from file.

    Search order:
    1. Explicit path if provided
    2. ./cribrum.yaml (or .yml, dotted variants) in current directory
    3. ~/.cribrum/config.yaml in home directory
    4. Default empty config

    Args:
        config_path: Optional explicit path to config file

    Returns:
        CribrumConfig instance with loaded or default values
    """
    search_paths: list[Path] = []

    if config_path:
        search_paths.append(Path(config_path))
    else:
        search_paths.append(Path.cwd() / "cribrum.yaml")
        search_paths.append(Path.cwd() / "cribrum.yml")
        search_paths.append(Path.cwd() / ".cribrum.yaml")
        search_paths.append(Path.cwd() / ".cribrum.yml")
        home_config_dir = Path.home() / ".cribrum"
        search_paths.append(home_config_dir / "config.yaml")
        search_paths.append(home_config_dir / "config.yml")

    for path in search_paths:
        if path.exists() and path.is_file():
            return _load_config_from_file(path)

    return CribrumConfig()


def _load_config_from_file(path: Path) -> CribrumConfig:
    """Load configuration from a specific file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return CribrumConfig(**data)


def merge_cli_with_config(
    config: CribrumConfig,
    *,
    strategy: str | None = None,
    output_format: str | None = None,
    output_path: str | None = None,
    kev_catalog: str | None = None,
    cve_details: str | None = None,
    fetch_kev: bool | None = None,
    infer_internet_facing: bool | None = None,
    min_risk_score: int | None = None,
    include_members: bool | None = None,
    log_level: str | None = None,
) -> CribrumConfig:
    """
    Merge CLI options with config file settings.

    CLI options take precedence over config file values; None means
    "keep the config value".
    """
    data = config.model_dump()

    if strategy is not None:
        data["grouping"]["strategy"] = strategy
    if output_format is not None:
        data["output"]["format"] = output_format
    if output_path is not None:
        data["output"]["path"] = output_path
    if kev_catalog is not None:
        data["enrichment"]["kev_catalog"] = kev_catalog
    if cve_details is not None:
        data["enrichment"]["cve_details"] = cve_details
    if fetch_kev is not None:
        data["enrichment"]["fetch_kev"] = fetch_kev
    if infer_internet_facing is not None:
        data["prioritization"]["infer_internet_facing"] = infer_internet_facing
    if min_risk_score is not None:
        data["prioritization"]["min_risk_score"] = min_risk_score
    if include_members is not None:
        data["output"]["include_members"] = include_members
    if log_level is not None:
        data["logging"]["level"] = log_level

    return CribrumConfig(**data)
