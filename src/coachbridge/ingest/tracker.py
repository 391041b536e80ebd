"""Per-session record of what the parse normalized and what it could not map.

One tracker is created for each parse and passed explicitly to the row
transformers; :meth:`NormalizationTracker.summarize` returns the summary and
resets the tracker for reuse.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..common.text_normalizer import upper_collapse

KINDS = ("organizations", "metrics", "industries")


@dataclass
class _Counter:
    display: str
    normalized: str
    count: int = 0


@dataclass
class _Unmatched:
    display: str
    guess: Optional[str]
    count: int = 0


@dataclass
class NormalizationSummary:
    organizations: List[Dict] = field(default_factory=list)
    metrics: List[Dict] = field(default_factory=list)
    industries: List[Dict] = field(default_factory=list)
    unmatched_organizations: List[Dict] = field(default_factory=list)
    unmatched_metrics: List[Dict] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict]]:
        return {
            "organizations": self.organizations,
            "metrics": self.metrics,
            "industries": self.industries,
            "unmatched_organizations": self.unmatched_organizations,
            "unmatched_metrics": self.unmatched_metrics,
        }


def is_unmatched_metric(original: str, canonical: Optional[str]) -> bool:
    """A metric is unmatched when only the upper-case fallback touched it."""
    return canonical is None or canonical == upper_collapse(original)


class NormalizationTracker:
    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self._normalized: Dict[str, Dict[str, _Counter]] = {kind: {} for kind in KINDS}
        self._unmatched_orgs: Dict[str, _Unmatched] = {}
        self._unmatched_metrics: Dict[str, _Unmatched] = {}

    def record_normalization(self, kind: str, original: Optional[str], normalized: Optional[str]) -> None:
        if kind not in self._normalized:
            raise ValueError(f"Unknown normalization kind: {kind!r}")
        if not original or not normalized:
            return
        bucket = self._normalized[kind]
        key = original.lower()
        entry = bucket.get(key)
        if entry is None:
            entry = bucket[key] = _Counter(display=original, normalized=normalized)
        entry.count += 1

    def _record_unmatched(self, bucket: Dict[str, _Unmatched], name: Optional[str], guess: Optional[str]) -> None:
        if not name:
            return
        key = name.lower()
        entry = bucket.get(key)
        if entry is None:
            entry = bucket[key] = _Unmatched(display=name, guess=guess)
        entry.count += 1

    def record_unmatched_org(self, org: Optional[str], canonical_guess: Optional[str]) -> None:
        self._record_unmatched(self._unmatched_orgs, org, canonical_guess)

    def record_unmatched_metric(self, metric: Optional[str], canonical_guess: Optional[str]) -> None:
        self._record_unmatched(self._unmatched_metrics, metric, canonical_guess)

    def summarize(self) -> NormalizationSummary:
        summary = NormalizationSummary()
        for kind in KINDS:
            entries = [
                {"original": c.display, "normalized": c.normalized, "occurrence_count": c.count}
                for c in self._normalized[kind].values()
                if c.display.lower() != c.normalized.lower()
            ]
            entries.sort(key=lambda e: e["occurrence_count"], reverse=True)
            setattr(summary, kind, entries)

        orgs = [
            {"name": u.display, "canonical_guess": u.guess, "occurrence_count": u.count}
            for u in self._unmatched_orgs.values()
        ]
        orgs.sort(key=lambda e: e["occurrence_count"], reverse=True)
        metrics = [
            {"name": u.display, "occurrence_count": u.count}
            for u in self._unmatched_metrics.values()
        ]
        metrics.sort(key=lambda e: e["occurrence_count"], reverse=True)
        summary.unmatched_organizations = orgs
        summary.unmatched_metrics = metrics

        self.reset()
        return summary
