"""Split parsed records into new rows and rows already present in the store.

Keys are pipe-joined and lower-cased; ``existing_rows`` are store-shaped
mappings (snake_case columns) for the client being uploaded.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, List, Mapping, TypeVar

from .transformers import BehaviorRecord, MetricRecord

T = TypeVar("T")


@dataclass
class DuplicateCheckResult(Generic[T]):
    unique: List[T] = field(default_factory=list)
    duplicates: List[T] = field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)


def _key(*parts: Any) -> str:
    return "|".join("" if p is None else str(p) for p in parts).lower()


def behavior_key(organization, program, metric, behavior, sub_behavior, month, year) -> str:
    return _key(organization, program, metric, behavior, sub_behavior, month, year)


def metric_key(organization, program, metric_name, month, year) -> str:
    return _key(organization, program, metric_name, month, year)


def behavior_record_key(record: BehaviorRecord) -> str:
    return behavior_key(
        record.organization,
        record.program,
        record.metric,
        record.behavior,
        record.sub_behavior,
        record.month,
        record.year,
    )


def behavior_row_key(row: Mapping[str, Any]) -> str:
    return behavior_key(
        row.get("organization"),
        row.get("program"),
        row.get("metric"),
        row.get("behavior"),
        row.get("sub_behavior"),
        row.get("month"),
        row.get("year"),
    )


def metric_record_key(record: MetricRecord) -> str:
    return metric_key(record.organization, record.program, record.metric_name, record.month, record.year)


def metric_row_key(row: Mapping[str, Any]) -> str:
    return metric_key(row.get("organization"), row.get("program"), row.get("metric_name"), row.get("month"), row.get("year"))


def split_duplicates(
    records: Iterable[T],
    existing_rows: Iterable[Mapping[str, Any]],
    record_key: Callable[[T], str],
    row_key: Callable[[Mapping[str, Any]], str],
) -> DuplicateCheckResult[T]:
    existing = {row_key(row) for row in existing_rows}
    result: DuplicateCheckResult[T] = DuplicateCheckResult()
    for record in records:
        if record_key(record) in existing:
            result.duplicates.append(record)
        else:
            result.unique.append(record)
    return result


def filter_duplicate_behaviors(
    records: Iterable[BehaviorRecord], existing_rows: Iterable[Mapping[str, Any]]
) -> DuplicateCheckResult[BehaviorRecord]:
    return split_duplicates(records, existing_rows, behavior_record_key, behavior_row_key)


def filter_duplicate_metrics(
    records: Iterable[MetricRecord], existing_rows: Iterable[Mapping[str, Any]]
) -> DuplicateCheckResult[MetricRecord]:
    return split_duplicates(records, existing_rows, metric_record_key, metric_row_key)
