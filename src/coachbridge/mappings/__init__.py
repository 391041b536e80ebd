"""Alias rules, static fallback tables and session resolvers."""

from .alias_rules import AliasRule, MatchType, build_resolver
from .resolvers import CanonicalResolvers, build_session_resolvers
from .static_tables import derive_canonical_industry, derive_canonical_metric, derive_canonical_org

__all__ = [
    "AliasRule",
    "MatchType",
    "build_resolver",
    "CanonicalResolvers",
    "build_session_resolvers",
    "derive_canonical_org",
    "derive_canonical_metric",
    "derive_canonical_industry",
]
