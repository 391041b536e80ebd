"""Ordered, client-aware alias matching.

A resolver is built once per parse session from a snapshot of alias rules and
then evaluated for every cell. Rule ordering:

1. rules scoped to the active client, then global rules (``client_scope`` None);
   rules scoped to any other client are dropped;
2. within a tier, higher ``priority`` first;
3. ties keep the order the store returned them in.

The first matching rule wins. Regex rules are compiled up front; a pattern that
does not compile, or is longer than ``max_pattern_length``, is logged and
skipped so one bad rule cannot take down a parse.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from ..logging_utils import get_logger, log_warning

logger = get_logger("mappings")

Resolver = Callable[[object], Optional[str]]

DEFAULT_MAX_PATTERN_LENGTH = 500


class MatchType(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    REGEX = "regex"


@dataclass(frozen=True)
class AliasRule:
    canonical_value: str
    alias_pattern: str
    match_type: MatchType = MatchType.EXACT
    case_sensitive: bool = False
    priority: int = 0
    client_scope: Optional[str] = None


def order_rules(rules: Iterable[AliasRule], client_tag: Optional[str]) -> List[AliasRule]:
    """Return the eligible rules for ``client_tag`` in evaluation order."""
    eligible = [r for r in rules if r.client_scope is None or r.client_scope == client_tag]
    # sorted() is stable, so equal keys keep store order
    return sorted(
        eligible,
        key=lambda r: (0 if r.client_scope is not None else 1, -r.priority),
    )


def _compile_matcher(rule: AliasRule, max_pattern_length: int) -> Optional[Callable[[str, str], bool]]:
    """Return ``match(value, lowered_value)`` for a rule, or None to skip it."""
    pattern = rule.alias_pattern
    match_type = MatchType(rule.match_type)

    if match_type is MatchType.REGEX:
        if len(pattern) > max_pattern_length:
            log_warning(
                logger,
                f"Skipping regex alias for {rule.canonical_value!r}: pattern longer than {max_pattern_length} chars",
            )
            return None
        flags = 0 if rule.case_sensitive else re.IGNORECASE
        try:
            compiled = re.compile(pattern, flags)
        except re.error as exc:
            log_warning(logger, f"Invalid regex alias {pattern!r} for {rule.canonical_value!r}: {exc}")
            return None
        return lambda value, _lowered: compiled.search(value) is not None

    if rule.case_sensitive:
        if match_type is MatchType.EXACT:
            return lambda value, _lowered: value == pattern
        return lambda value, _lowered: pattern in value

    needle = pattern.lower()
    if match_type is MatchType.EXACT:
        return lambda _value, lowered: lowered == needle
    return lambda _value, lowered: needle in lowered


def build_resolver(
    rules: Iterable[AliasRule],
    client_tag: Optional[str],
    max_pattern_length: int = DEFAULT_MAX_PATTERN_LENGTH,
) -> Resolver:
    """Build a pure resolver ``raw -> canonical value | None``.

    ``None`` and blank input resolve to ``None``; everything else is
    ``str()``-ed and stripped before matching.
    """
    compiled: List[Tuple[Callable[[str, str], bool], str]] = []
    for rule in order_rules(rules, client_tag):
        matcher = _compile_matcher(rule, max_pattern_length)
        if matcher is not None:
            compiled.append((matcher, rule.canonical_value))

    def resolve(raw: object) -> Optional[str]:
        if raw is None:
            return None
        value = str(raw).strip()
        if not value:
            return None
        lowered = value.lower()
        for matcher, canonical in compiled:
            if matcher(value, lowered):
                return canonical
        return None

    return resolve


def null_resolver(_raw: object) -> Optional[str]:
    return None
