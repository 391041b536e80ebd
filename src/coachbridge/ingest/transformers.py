"""Row-level transformation of decoded sheet rows into normalized records.

Each row passes through the same steps: period parse, optional recency
filter, required-field check, numeric coercion, canonical name resolution and
tracker bookkeeping. A row that fails a check increments exactly one filter
counter in :class:`DatasetStats` and yields no record.
"""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from ..common.text_normalizer import coerce_string
from ..mappings.resolvers import CanonicalResolvers
from .calendar_mapper import DEFAULT_RECENCY_DAYS, Period, is_month_old_enough, parse_period
from .metric_normalizer import to_number
from .schema_validator import RowAccessor
from .tracker import NormalizationTracker, is_unmatched_metric

DEFAULT_ACTIVITY_PROGRAM = "ACTIVITY METRICS"

# header on spreadsheet row 1, first data row is row 2
HEADER_ROW_OFFSET = 2


@dataclass
class DatasetStats:
    total_rows: int = 0
    accepted_rows: int = 0
    filtered_missing_data: int = 0
    filtered_too_recent: int = 0

    def is_conserved(self) -> bool:
        return self.total_rows == self.accepted_rows + self.filtered_missing_data + self.filtered_too_recent

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class FilterReason(str, Enum):
    MISSING_DATA = "missing_data"
    TOO_RECENT = "too_recent"


@dataclass(frozen=True)
class FilteredOut:
    reason: FilterReason
    source_row_number: int


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class BehaviorRecord:
    client: str
    month: str
    year: int
    source_sheet: str
    source_row_number: int
    organization: str
    program: str
    metric: Optional[str]
    behavior: Optional[str]
    sub_behavior: Optional[str]
    coaching_count: Optional[float]
    effectiveness_pct: Optional[float]
    canonical_org: Optional[str]
    canonical_metric: Optional[str]
    canonical_industry: Optional[str]
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)
    id: str = field(default_factory=_new_id)

    def to_public_dict(self) -> Dict[str, Any]:
        """Record fields without the raw row."""
        data = asdict(self)
        data.pop("raw", None)
        return data


@dataclass(frozen=True)
class MetricRecord:
    client: str
    month: str
    year: int
    source_sheet: str
    source_row_number: int
    organization: str
    program: str
    metric_name: str
    actual: Optional[float]
    goal: Optional[float]
    ptg: Optional[float]
    is_activity_metric: bool
    canonical_org: Optional[str]
    canonical_metric: Optional[str]
    canonical_industry: Optional[str]
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)
    id: str = field(default_factory=_new_id)

    def to_public_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("raw", None)
        return data


Record = Union[BehaviorRecord, MetricRecord]


def is_activity_program(program: Optional[str], sentinel: str = DEFAULT_ACTIVITY_PROGRAM) -> bool:
    """Activity metrics are identified by an exact, case-sensitive program value."""
    return program == sentinel


@dataclass
class RowContext:
    """Everything a row transform needs besides the row itself."""

    sheet_name: str
    client: str
    today: date
    stats: DatasetStats
    resolvers: CanonicalResolvers
    tracker: NormalizationTracker
    skip_date_filter: bool = True
    recency_days: int = DEFAULT_RECENCY_DAYS
    activity_program: str = DEFAULT_ACTIVITY_PROGRAM
    column_aliases: Optional[Mapping[str, Sequence[str]]] = None


def _check_period(accessor: RowAccessor, ctx: RowContext, row_number: int) -> Union[Period, FilteredOut]:
    ctx.stats.total_rows += 1
    period = parse_period(accessor.get("month_year"))
    if not period.is_complete:
        ctx.stats.filtered_missing_data += 1
        return FilteredOut(FilterReason.MISSING_DATA, row_number)
    if not ctx.skip_date_filter and not is_month_old_enough(period, ctx.today, ctx.recency_days):
        ctx.stats.filtered_too_recent += 1
        return FilteredOut(FilterReason.TOO_RECENT, row_number)
    return period


def _missing(ctx: RowContext, row_number: int) -> FilteredOut:
    ctx.stats.filtered_missing_data += 1
    return FilteredOut(FilterReason.MISSING_DATA, row_number)


def _resolve_and_track(ctx: RowContext, organization_value: Any, metric_value: Any):
    org_str = coerce_string(organization_value)
    metric_str = coerce_string(metric_value)
    canonical_org = ctx.resolvers.canonical_org(organization_value)
    canonical_metric = ctx.resolvers.canonical_metric(metric_value)
    canonical_industry = ctx.resolvers.canonical_industry(organization_value)

    tracker = ctx.tracker
    tracker.record_normalization("organizations", org_str, canonical_org)
    tracker.record_normalization("metrics", metric_str, canonical_metric)
    tracker.record_normalization("industries", org_str, canonical_industry)
    if org_str and not canonical_industry:
        tracker.record_unmatched_org(org_str, canonical_org)
    if metric_str and is_unmatched_metric(metric_str, canonical_metric):
        tracker.record_unmatched_metric(metric_str, canonical_metric)
    return org_str, metric_str, canonical_org, canonical_metric, canonical_industry


def transform_behavior_row(row: Mapping[str, Any], row_index: int, ctx: RowContext) -> Union[BehaviorRecord, FilteredOut]:
    row_number = row_index + HEADER_ROW_OFFSET
    accessor = RowAccessor(row, ctx.column_aliases)
    period = _check_period(accessor, ctx, row_number)
    if isinstance(period, FilteredOut):
        return period

    organization_value = accessor.get("organization")
    program_value = accessor.get("program")
    program = coerce_string(program_value)
    if coerce_string(organization_value) is None or program is None:
        return _missing(ctx, row_number)

    metric_value = accessor.get("metric")
    org_str, metric_str, canonical_org, canonical_metric, canonical_industry = _resolve_and_track(
        ctx, organization_value, metric_value
    )

    record = BehaviorRecord(
        client=ctx.client,
        month=period.month,
        year=period.year,
        source_sheet=ctx.sheet_name,
        source_row_number=row_number,
        organization=org_str,
        program=program,
        metric=metric_str,
        behavior=coerce_string(accessor.get("behavior")),
        sub_behavior=coerce_string(accessor.get("sub_behavior")),
        coaching_count=to_number(accessor.get("coaching_count")),
        effectiveness_pct=to_number(accessor.get("effectiveness_pct")),
        canonical_org=canonical_org,
        canonical_metric=canonical_metric,
        canonical_industry=canonical_industry,
        raw=dict(row),
    )
    ctx.stats.accepted_rows += 1
    return record


def transform_metric_row(row: Mapping[str, Any], row_index: int, ctx: RowContext) -> Union[MetricRecord, FilteredOut]:
    row_number = row_index + HEADER_ROW_OFFSET
    accessor = RowAccessor(row, ctx.column_aliases)
    period = _check_period(accessor, ctx, row_number)
    if isinstance(period, FilteredOut):
        return period

    organization_value = accessor.get("organization")
    program = coerce_string(accessor.get("program"))
    metric_value = accessor.get("metric")
    if coerce_string(organization_value) is None or program is None or coerce_string(metric_value) is None:
        return _missing(ctx, row_number)

    org_str, metric_str, canonical_org, canonical_metric, canonical_industry = _resolve_and_track(
        ctx, organization_value, metric_value
    )

    record = MetricRecord(
        client=ctx.client,
        month=period.month,
        year=period.year,
        source_sheet=ctx.sheet_name,
        source_row_number=row_number,
        organization=org_str,
        program=program,
        metric_name=metric_str,
        actual=to_number(accessor.get("actual")),
        goal=to_number(accessor.get("goal")),
        ptg=to_number(accessor.get("ptg")),
        is_activity_metric=is_activity_program(program, ctx.activity_program),
        canonical_org=canonical_org,
        canonical_metric=canonical_metric,
        canonical_industry=canonical_industry,
        raw=dict(row),
    )
    ctx.stats.accepted_rows += 1
    return record
