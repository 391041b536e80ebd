"""Header alias resolution and sheet classification for coaching workbooks.

Spreadsheet headers are inconsistent across clients, so every field is read
through :class:`RowAccessor`, which consults ``COLUMN_ALIASES`` (canonical
name -> accepted spellings, compared lower-cased and stripped). The first
spelling that holds a non-empty value wins.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..common.text_normalizer import is_blank

Row = Mapping[str, Any]

COLUMN_ALIASES: Dict[str, List[str]] = {
    "month_year": ["month_year", "month year", "monthyear", "period of time", "period", "month name", "month", "date"],
    # some exports leave the organization header blank
    "organization": ["organization", "org", "organisation", "client_org", ""],
    "program": ["program", "programme", "prog"],
    "metric": ["metric", "metrics", "metri", "metricname", "metric_name", "metric name", "kpi"],
    "behavior": ["behavior", "behaviors", "behaviour", "behaviours"],
    "sub_behavior": ["sub-behavior", "sub_behavior", "subbehavior", "subbehaviors", "sub behavior", "sub-behaviours"],
    "coaching_count": [
        "coaching count",
        "coaching_count",
        "coachingcount",
        "totalcoachings",
        "total coachings",
        "total_coachings",
        "count",
    ],
    "effectiveness_pct": ["effectiveness%", "effectiveness_pct", "effectiveness", "effectiveness pct", "eff%", "eff"],
    "actual": ["actual", "actuals", "value", "result"],
    "goal": ["goal", "goals", "target"],
    "ptg": ["ptg", "sum of ptg", "percent to goal", "% to goal", "pct_to_goal"],
}

BEHAVIOR_SIGNAL_COLUMNS = (
    "behavior",
    "behaviors",
    "behaviour",
    "behaviours",
    "subbehaviors",
    "sub-behavior",
    "subbehavior",
)
METRIC_SIGNAL_COLUMNS = ("actual", "actuals", "goal", "goals", "ptg", "sum of ptg")


def _norm_key(key: object) -> str:
    return str(key).strip().lower()


def merge_column_aliases(extra: Optional[Mapping[str, Sequence[str]]] = None) -> Dict[str, List[str]]:
    """Built-in alias table with configured spellings appended per column."""
    merged = {name: list(aliases) for name, aliases in COLUMN_ALIASES.items()}
    for name, aliases in (extra or {}).items():
        bucket = merged.setdefault(_norm_key(name), [])
        for alias in aliases:
            alias = _norm_key(alias)
            if alias not in bucket:
                bucket.append(alias)
    return merged


class RowAccessor:
    """Case-insensitive, alias-aware view over one decoded row."""

    def __init__(self, row: Row, aliases: Optional[Mapping[str, Sequence[str]]] = None):
        self.row = row
        self.aliases = aliases if aliases is not None else COLUMN_ALIASES
        self._index: Dict[str, Any] = {}
        for key, value in row.items():
            norm = _norm_key(key)
            # first header wins when two columns normalize to the same key
            if norm not in self._index:
                self._index[norm] = value

    def _lookup(self, key: str) -> Any:
        value = self._index.get(_norm_key(key))
        return None if is_blank(value) else value

    def get(self, canonical_name: str, *extra_aliases: str) -> Any:
        candidates = list(self.aliases.get(canonical_name, [])) + [canonical_name] + list(extra_aliases)
        for candidate in candidates:
            value = self._lookup(candidate)
            if value is not None:
                return value
        return None

    def has_any(self, *names: str) -> bool:
        return any(_norm_key(n) in self._index for n in names)

    def keys(self) -> List[str]:
        return list(self._index.keys())


def make_accessor(row: Row, aliases: Optional[Mapping[str, Sequence[str]]] = None) -> RowAccessor:
    return RowAccessor(row, aliases)


def looks_like_behavior_sheet(rows: Sequence[Row]) -> bool:
    if not rows:
        return False
    return make_accessor(rows[0]).has_any(*BEHAVIOR_SIGNAL_COLUMNS)


def looks_like_metric_sheet(rows: Sequence[Row]) -> bool:
    """Metric columns present and no behavior column; behavior wins ties."""
    if not rows:
        return False
    accessor = make_accessor(rows[0])
    return accessor.has_any(*METRIC_SIGNAL_COLUMNS) and not accessor.has_any(*BEHAVIOR_SIGNAL_COLUMNS)


def detect_sheet_type(rows: Sequence[Row]) -> str:
    if looks_like_behavior_sheet(rows):
        return "behaviors"
    if looks_like_metric_sheet(rows):
        return "metrics"
    return "unknown"


@dataclass
class SheetAssignment:
    behavior_sheet: Optional[str] = None
    metric_sheet: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.behavior_sheet is not None and self.metric_sheet is not None


def auto_detect_sheets(sheets: Iterable[tuple[str, Sequence[Row]]]) -> SheetAssignment:
    """Greedy first-fit: the first matching sheet per role, in file order."""
    assignment = SheetAssignment()
    for name, rows in sheets:
        if not rows:
            continue
        if assignment.behavior_sheet is None and looks_like_behavior_sheet(rows):
            assignment.behavior_sheet = name
        elif assignment.metric_sheet is None and looks_like_metric_sheet(rows):
            assignment.metric_sheet = name
        if assignment.complete:
            break
    return assignment
