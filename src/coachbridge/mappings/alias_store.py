"""File-backed alias rule source with a short-lived in-memory cache.

Rule files are YAML (a list of rule mappings, or a mapping with a ``rules``
list) or CSV with the columns ``canonical_name`` (or ``canonical_industry`` /
``canonical_value``), ``alias``, ``match_type``, ``case_sensitive``,
``priority`` and ``client``. Rows that fail validation are skipped with a
warning; a file that cannot be read at all raises :class:`AliasSourceError`
unless an earlier snapshot is available.
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd
import yaml
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from ..logging_utils import get_logger, log_system_event, log_warning
from .alias_rules import AliasRule, MatchType

logger = get_logger("mappings")

DEFAULT_CACHE_TTL_SECONDS = 300


class AliasSourceError(RuntimeError):
    """Alias rules could not be loaded and no cached snapshot exists."""


class AliasRuleRow(BaseModel):
    canonical_value: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("canonical_value", "canonical_name", "canonical_industry"),
    )
    alias: str = Field(..., min_length=1)
    match_type: MatchType = MatchType.EXACT
    case_sensitive: bool = False
    priority: int = 0
    client: Optional[str] = None

    @field_validator("canonical_value", "alias", mode="before")
    @classmethod
    def strip_text(cls, v):
        return str(v).strip() if v is not None else v

    @field_validator("match_type", mode="before")
    @classmethod
    def lower_match_type(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return MatchType.EXACT
        return str(v).strip().lower()

    @field_validator("case_sensitive", mode="before")
    @classmethod
    def blank_case_sensitive(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return False
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def blank_priority(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @field_validator("client", mode="before")
    @classmethod
    def blank_client(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    def to_rule(self) -> AliasRule:
        return AliasRule(
            canonical_value=self.canonical_value,
            alias_pattern=self.alias,
            match_type=self.match_type,
            case_sensitive=self.case_sensitive,
            priority=self.priority,
            client_scope=self.client,
        )


def _read_raw_rows(path: Path) -> List[Dict[str, Any]]:
    ext = path.suffix.lower()
    if ext in (".yaml", ".yml"):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or []
        if isinstance(data, dict):
            data = data.get("rules", [])
        if not isinstance(data, list):
            raise ValueError(f"Alias file {path} must hold a list of rules")
        return [row for row in data if isinstance(row, dict)]
    if ext == ".csv":
        df = pd.read_csv(path, dtype=object, keep_default_na=False, encoding="utf-8-sig")
        df.columns = [str(c).strip().lower() for c in df.columns]
        return df.to_dict(orient="records")
    raise ValueError(f"Unsupported alias file type: {path.suffix}")


def parse_alias_rows(rows: List[Dict[str, Any]], source: str = "<memory>") -> List[AliasRule]:
    """Validate raw rule rows, keeping store order and dropping invalid rows."""
    rules: List[AliasRule] = []
    for idx, row in enumerate(rows):
        try:
            rules.append(AliasRuleRow.model_validate(row).to_rule())
        except ValidationError as exc:
            log_warning(logger, f"Skipping alias row {idx} in {source}: {exc.errors()[0]['msg']}")
    return rules


class AliasRuleSource:
    """Loads one rule file and caches the parsed snapshot for ``ttl_seconds``."""

    def __init__(
        self,
        path: str | Path | None,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = Path(path) if path is not None else None
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: Optional[List[AliasRule]] = None
        self._loaded_at = 0.0

    def clear_cache(self) -> None:
        self._cache = None
        self._loaded_at = 0.0

    def load(self) -> List[AliasRule]:
        if self.path is None:
            return []
        now = self._clock()
        if self._cache is not None and now - self._loaded_at < self.ttl_seconds:
            return list(self._cache)

        try:
            if not self.path.exists():
                raise FileNotFoundError(f"Alias file not found: {self.path}")
            rules = parse_alias_rows(_read_raw_rows(self.path), source=str(self.path))
        except (OSError, ValueError, yaml.YAMLError, pd.errors.ParserError) as exc:
            if self._cache is not None:
                log_warning(logger, f"Reusing stale alias rules for {self.path}: {exc}")
                return list(self._cache)
            raise AliasSourceError(f"Failed to load alias rules from {self.path}: {exc}") from exc

        self._cache = rules
        self._loaded_at = now
        log_system_event(logger, f"Loaded {len(rules)} alias rules from {self.path}")
        return list(rules)


_SHARED_SOURCES: Dict[Tuple[Path, int], AliasRuleSource] = {}


def shared_source(path: str | Path | None, ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS) -> AliasRuleSource:
    """Return the process-wide source for ``path`` so its cache spans parse sessions."""
    if path is None:
        return AliasRuleSource(None, ttl_seconds)
    key = (Path(path).expanduser().resolve(), ttl_seconds)
    source = _SHARED_SOURCES.get(key)
    if source is None:
        source = _SHARED_SOURCES[key] = AliasRuleSource(key[0], ttl_seconds)
    return source


def clear_shared_sources() -> None:
    _SHARED_SOURCES.clear()


def load_metric_alias_rules(source: AliasRuleSource) -> List[AliasRule]:
    return source.load()


def load_industry_alias_rules(source: AliasRuleSource) -> List[AliasRule]:
    return source.load()
