"""Store-shaped insert payloads for reviewed records.

Payloads drop the record id, provenance and raw row; canonical names are
written to the ``amplifai_*`` columns the store uses.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar

from .transformers import BehaviorRecord, MetricRecord

T = TypeVar("T", BehaviorRecord, MetricRecord)


def to_behavior_insert(record: BehaviorRecord) -> Dict[str, Any]:
    return {
        "client": record.client,
        "organization": record.organization,
        "program": record.program,
        "month": record.month,
        "year": record.year,
        "metric": record.metric,
        "behavior": record.behavior,
        "sub_behavior": record.sub_behavior,
        "coaching_count": record.coaching_count,
        "effectiveness_pct": record.effectiveness_pct,
        "amplifai_org": record.canonical_org,
        "amplifai_metric": record.canonical_metric,
        "amplifai_industry": record.canonical_industry,
    }


def to_monthly_metric_insert(record: MetricRecord) -> Dict[str, Any]:
    return {
        "client": record.client,
        "organization": record.organization,
        "program": record.program,
        "metric_name": record.metric_name,
        "month": record.month,
        "year": record.year,
        "actual": record.actual,
        "goal": record.goal,
        "ptg": record.ptg,
        "amplifai_org": record.canonical_org,
        "amplifai_metric": record.canonical_metric,
        "amplifai_industry": record.canonical_industry,
    }


# activity metrics share the monthly column set
to_activity_metric_insert = to_monthly_metric_insert


def select_rows_by_id(records: Sequence[T], allowed_ids: Optional[Iterable[str]] = None) -> List[T]:
    """Records whose id is in ``allowed_ids``; all records when none are given."""
    ids = set(allowed_ids or [])
    if not ids:
        return list(records)
    return [r for r in records if r.id in ids]
