"""Configuration validation models using Pydantic."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class IngestConfig(BaseModel):
    """Row filtering, sheet detection and column alias settings."""

    skip_date_filter: bool = Field(
        True,
        description="Accept rows regardless of how recently their month closed",
    )
    recency_days: int = Field(
        9,
        ge=0,
        description="Whole days after month end before a period counts as closed",
    )
    activity_program: str = Field(
        "ACTIVITY METRICS",
        description="Program value that routes metric rows to the activity bucket",
    )
    behavior_sheet_keyword: str = Field(
        "effectiveness",
        description="Sheet-name keyword used when behavior auto-detection finds nothing",
    )
    metric_sheet_keyword: str = Field(
        "goal",
        description="Sheet-name keyword used when metric auto-detection finds nothing",
    )
    column_aliases: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Extra header spellings per canonical column",
    )
    max_pattern_length: int = Field(
        500,
        ge=1,
        description="Regex alias patterns longer than this are skipped",
    )

    @field_validator("activity_program")
    @classmethod
    def validate_activity_program(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("activity_program must not be blank")
        return v

    @field_validator("column_aliases")
    @classmethod
    def normalize_column_aliases(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        return {
            str(name).strip().lower(): [str(a).strip().lower() for a in aliases]
            for name, aliases in v.items()
        }


class AliasSourceConfig(BaseModel):
    """Where dynamic alias rules come from and how long they are cached."""

    metric_aliases_path: Optional[Path] = Field(None, description="YAML or CSV file of metric alias rules")
    industry_aliases_path: Optional[Path] = Field(None, description="YAML or CSV file of industry alias rules")
    cache_ttl_seconds: int = Field(300, ge=0, description="Seconds a loaded rule snapshot stays fresh")


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file_name: str = "ingestion_log.txt"
    logs_dir: Path = Path("logs")

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v):
        return str(v).upper()


class AppConfig(BaseModel):
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    aliases: AliasSourceConfig = Field(default_factory=AliasSourceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_and_validate_config(config_dict: Optional[dict]) -> AppConfig:
    """
    Validate a raw configuration mapping.

    Args:
        config_dict: Parsed YAML content (may be None or empty)

    Returns:
        Validated AppConfig object

    Raises:
        ValidationError: If configuration is invalid
    """
    return AppConfig.model_validate(config_dict or {})


def load_config(path: str | Path | None = None) -> AppConfig:
    """Read a YAML config file; defaults when no path is given.

    Relative alias file paths are resolved against the config file's folder.
    """
    if path is None:
        return AppConfig()
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping at the top level")

    config = load_and_validate_config(raw)
    base = config_path.parent
    aliases = config.aliases
    if aliases.metric_aliases_path is not None and not aliases.metric_aliases_path.is_absolute():
        aliases.metric_aliases_path = base / aliases.metric_aliases_path
    if aliases.industry_aliases_path is not None and not aliases.industry_aliases_path.is_absolute():
        aliases.industry_aliases_path = base / aliases.industry_aliases_path
    return config
