"""Two-tier canonical name resolution: dynamic alias rules, then static tables."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..common.config_validator import AppConfig
from ..logging_utils import get_logger, log_warning
from .alias_rules import Resolver, build_resolver, null_resolver
from .alias_store import (
    AliasRuleSource,
    AliasSourceError,
    load_industry_alias_rules,
    load_metric_alias_rules,
    shared_source,
)
from .static_tables import derive_canonical_industry, derive_canonical_metric, derive_canonical_org

logger = get_logger("mappings")


@dataclass(frozen=True)
class CanonicalResolvers:
    """Resolvers for one parse session.

    A dynamic result always wins; the static table is only asked when the
    dynamic resolver returns None.
    """

    metric: Resolver = null_resolver
    industry: Resolver = null_resolver
    org: Resolver = null_resolver

    def canonical_org(self, raw: object) -> Optional[str]:
        return self.org(raw) or derive_canonical_org(raw)

    def canonical_metric(self, raw: object) -> Optional[str]:
        return self.metric(raw) or derive_canonical_metric(raw)

    def canonical_industry(self, organization: object) -> Optional[str]:
        return self.industry(organization) or derive_canonical_industry(organization)


STATIC_ONLY = CanonicalResolvers()


def _safe_load(loader, source: AliasRuleSource, label: str):
    try:
        return loader(source)
    except AliasSourceError as exc:
        log_warning(logger, f"{label} alias rules unavailable, using static tables only ({exc})")
        return []


def build_session_resolvers(
    config: AppConfig,
    client: Optional[str],
    metric_source: Optional[AliasRuleSource] = None,
    industry_source: Optional[AliasRuleSource] = None,
) -> CanonicalResolvers:
    """Load the rule snapshots for a parse and build client-aware resolvers.

    Sources default to the shared, process-wide sources for the files named
    in ``config.aliases``, so a snapshot is reused until its TTL expires and a
    failed reload falls back to it. A source that cannot produce any rules
    contributes none.
    """
    aliases = config.aliases
    if metric_source is None:
        metric_source = shared_source(aliases.metric_aliases_path, aliases.cache_ttl_seconds)
    if industry_source is None:
        industry_source = shared_source(aliases.industry_aliases_path, aliases.cache_ttl_seconds)

    max_len = config.ingest.max_pattern_length
    metric_rules = _safe_load(load_metric_alias_rules, metric_source, "Metric")
    industry_rules = _safe_load(load_industry_alias_rules, industry_source, "Industry")

    return CanonicalResolvers(
        metric=build_resolver(metric_rules, client, max_len) if metric_rules else null_resolver,
        industry=build_resolver(industry_rules, client, max_len) if industry_rules else null_resolver,
    )
