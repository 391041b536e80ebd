"""Workbook-level orchestration and the ``coachbridge-ingest`` CLI.

A parse session resolves which sheet holds behavior data and which holds
metric data, runs every row through the transformers with one session-scoped
tracker and resolver set, and returns records, per-dataset stats, the sheet
assignment, the normalization summary and a flat list of issues.
"""
from __future__ import annotations

import argparse
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..common.config_validator import AppConfig, load_config
from ..common.text_normalizer import collapse_ws
from ..logging_utils import get_logger, log_system_event, log_warning, setup_logging
from ..mappings.resolvers import CanonicalResolvers, build_session_resolvers
from .calendar_mapper import utc_today
from .schema_validator import (
    RowAccessor,
    SheetAssignment,
    auto_detect_sheets,
    detect_sheet_type,
    merge_column_aliases,
)
from .tracker import NormalizationSummary, NormalizationTracker
from .transformers import (
    BehaviorRecord,
    DatasetStats,
    MetricRecord,
    RowContext,
    transform_behavior_row,
    transform_metric_row,
)
from .validation_report import write_outputs
from .workbook_reader import (
    Rows,
    WorkbookSource,
    WorkbookStructureError,
    read_csv_source,
    read_workbook,
)

logger = get_logger("ingest")

UNKNOWN_CLIENT = "Unknown Client"

NO_BEHAVIOR_SHEET = (
    "No sheet could be resolved for behavioral coaching data. "
    "Looking for columns: Behavior, Sub-Behavior, Coaching Count, Effectiveness%"
)
NO_METRIC_SHEET = "No sheet could be resolved for metric data. Looking for columns: Actual, Goal, PTG"


@dataclass
class WorkbookParseResult:
    behavior_records: List[BehaviorRecord] = field(default_factory=list)
    monthly_metric_records: List[MetricRecord] = field(default_factory=list)
    activity_metric_records: List[MetricRecord] = field(default_factory=list)
    dataset_stats: Dict[str, DatasetStats] = field(default_factory=dict)
    sheet_assignment: SheetAssignment = field(default_factory=SheetAssignment)
    issues: List[str] = field(default_factory=list)
    normalization: NormalizationSummary = field(default_factory=NormalizationSummary)
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SingleSheetParseResult:
    sheet_name: str
    detected_type: str
    columns: List[str] = field(default_factory=list)
    behavior_records: List[BehaviorRecord] = field(default_factory=list)
    monthly_metric_records: List[MetricRecord] = field(default_factory=list)
    activity_metric_records: List[MetricRecord] = field(default_factory=list)
    stats: DatasetStats = field(default_factory=DatasetStats)
    issues: List[str] = field(default_factory=list)
    normalization: NormalizationSummary = field(default_factory=NormalizationSummary)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def dataset_stats(self) -> Dict[str, DatasetStats]:
        return {self.detected_type: self.stats}


def infer_client_from_file(file_name: str) -> str:
    """Derive a client tag from an upload name such as ``uhc_data.xlsx``."""
    stem = re.sub(r"\.xlsx$", "", file_name, flags=re.IGNORECASE)
    stem = re.sub(r"_data$", "", stem, flags=re.IGNORECASE)
    segment = collapse_ws(re.split(r"[_-]", stem)[0])
    if not segment:
        return UNKNOWN_CLIENT
    if "teleperformance" in segment.lower():
        return "TP"
    if len(segment) <= 4:
        return segment.upper()
    return segment[0].upper() + segment[1:]


def _pick_by_keyword(sheet_names: Sequence[str], keyword: str, taken: Optional[str]) -> Optional[str]:
    keyword = keyword.lower()
    for name in sheet_names:
        if name != taken and keyword in name.lower():
            return name
    return None


def _require_sheet(workbook: WorkbookSource, hint: str, role: str) -> str:
    if hint not in workbook.sheet_names:
        raise WorkbookStructureError(
            f"{role.capitalize()} sheet {hint!r} not found in workbook. Available sheets: {workbook.sheet_names}"
        )
    return hint


def resolve_sheets(
    workbook: WorkbookSource,
    config: AppConfig,
    behavior_sheet_hint: Optional[str] = None,
    metric_sheet_hint: Optional[str] = None,
) -> tuple[SheetAssignment, List[str]]:
    """Pick the behavior and metric sheets.

    Explicit hints must exist. Otherwise structural auto-detection decides,
    and only when it finds nothing is the sheet name keyword consulted.
    """
    issues: List[str] = []
    detected = auto_detect_sheets(workbook.iter_sheets())
    assignment = SheetAssignment(
        behavior_sheet=_require_sheet(workbook, behavior_sheet_hint, "behavior")
        if behavior_sheet_hint
        else detected.behavior_sheet,
        metric_sheet=_require_sheet(workbook, metric_sheet_hint, "metric")
        if metric_sheet_hint
        else detected.metric_sheet,
    )

    if assignment.behavior_sheet is None:
        fallback = _pick_by_keyword(workbook.sheet_names, config.ingest.behavior_sheet_keyword, assignment.metric_sheet)
        if fallback is not None:
            assignment.behavior_sheet = fallback
            issues.append(f"Behavior sheet {fallback!r} chosen by sheet name; its columns did not match behavior data")
        else:
            issues.append(NO_BEHAVIOR_SHEET)
    if assignment.metric_sheet is None:
        fallback = _pick_by_keyword(workbook.sheet_names, config.ingest.metric_sheet_keyword, assignment.behavior_sheet)
        if fallback is not None:
            assignment.metric_sheet = fallback
            issues.append(f"Metric sheet {fallback!r} chosen by sheet name; its columns did not match metric data")
        else:
            issues.append(NO_METRIC_SHEET)
    return assignment, issues


def _context(
    sheet_name: str,
    client: str,
    today: date,
    stats: DatasetStats,
    resolvers: CanonicalResolvers,
    tracker: NormalizationTracker,
    config: AppConfig,
) -> RowContext:
    ingest = config.ingest
    return RowContext(
        sheet_name=sheet_name,
        client=client,
        today=today,
        stats=stats,
        resolvers=resolvers,
        tracker=tracker,
        skip_date_filter=ingest.skip_date_filter,
        recency_days=ingest.recency_days,
        activity_program=ingest.activity_program,
        column_aliases=merge_column_aliases(ingest.column_aliases),
    )


def parse_behavior_rows(rows: Rows, ctx: RowContext) -> List[BehaviorRecord]:
    records: List[BehaviorRecord] = []
    for index, row in enumerate(rows):
        result = transform_behavior_row(row, index, ctx)
        if isinstance(result, BehaviorRecord):
            records.append(result)
    return records


def parse_metric_rows(rows: Rows, ctx: RowContext) -> List[MetricRecord]:
    records: List[MetricRecord] = []
    for index, row in enumerate(rows):
        result = transform_metric_row(row, index, ctx)
        if isinstance(result, MetricRecord):
            records.append(result)
    return records


def split_activity_metrics(records: List[MetricRecord]) -> tuple[List[MetricRecord], List[MetricRecord]]:
    """Return ``(monthly, activity)``; every record lands in exactly one."""
    monthly = [r for r in records if not r.is_activity_metric]
    activity = [r for r in records if r.is_activity_metric]
    return monthly, activity


def _filter_issues(label: str, stats: DatasetStats, required: str, config: AppConfig) -> List[str]:
    issues: List[str] = []
    if stats.filtered_missing_data:
        issues.append(f"{stats.filtered_missing_data} {label}rows filtered (missing required: {required})")
    if not config.ingest.skip_date_filter and stats.filtered_too_recent:
        issues.append(
            f"{stats.filtered_too_recent} {label}rows filtered (month not yet {config.ingest.recency_days} days old)"
        )
    return issues


BEHAVIOR_REQUIRED = "organization, program, or month/year"
METRIC_REQUIRED = "organization, program, metric, or month/year"


def _mapping_gap_issues(summary: NormalizationSummary) -> List[str]:
    issues: List[str] = []
    if summary.unmatched_organizations:
        names = ", ".join(e["name"] for e in summary.unmatched_organizations)
        issues.append(f"{len(summary.unmatched_organizations)} organizations have no industry mapping: {names}")
    if summary.unmatched_metrics:
        names = ", ".join(e["name"] for e in summary.unmatched_metrics)
        issues.append(f"{len(summary.unmatched_metrics)} metrics have no canonical mapping: {names}")
    return issues


def _log_columns(kind: str, sheet_name: Optional[str], rows: Rows) -> None:
    if rows:
        logger.info("%s sheet %r columns: %s", kind, sheet_name, RowAccessor(rows[0]).keys())


def _session(
    config: Optional[AppConfig],
    client: str,
    resolvers: Optional[CanonicalResolvers],
    tracker: Optional[NormalizationTracker],
    today: Optional[date],
):
    config = config or AppConfig()
    if resolvers is None:
        resolvers = build_session_resolvers(config, client)
    if tracker is None:
        tracker = NormalizationTracker()
    if today is None:
        today = utc_today()
    return config, resolvers, tracker, today


def parse_workbook(
    workbook: WorkbookSource,
    *,
    config: Optional[AppConfig] = None,
    client_override: Optional[str] = None,
    behavior_sheet_hint: Optional[str] = None,
    metric_sheet_hint: Optional[str] = None,
    resolvers: Optional[CanonicalResolvers] = None,
    tracker: Optional[NormalizationTracker] = None,
    today: Optional[date] = None,
) -> WorkbookParseResult:
    """Parse a combined workbook holding a behavior sheet and a metric sheet.

    Raises:
        WorkbookStructureError: no sheets, or a sheet hint names a missing sheet
    """
    if not workbook.sheet_names:
        raise WorkbookStructureError("The uploaded workbook does not contain any sheets.")

    client = client_override or infer_client_from_file(workbook.name)
    config, resolvers, tracker, today = _session(config, client, resolvers, tracker, today)
    tracker.reset()

    assignment, issues = resolve_sheets(workbook, config, behavior_sheet_hint, metric_sheet_hint)
    log_system_event(
        logger,
        f"{workbook.name}: client={client} behavior_sheet={assignment.behavior_sheet} metric_sheet={assignment.metric_sheet}",
    )

    behavior_rows = workbook.rows(assignment.behavior_sheet) if assignment.behavior_sheet else []
    metric_rows = workbook.rows(assignment.metric_sheet) if assignment.metric_sheet else []
    _log_columns("Behavior", assignment.behavior_sheet, behavior_rows)
    _log_columns("Metric", assignment.metric_sheet, metric_rows)

    behavior_stats = DatasetStats()
    metric_stats = DatasetStats()
    behaviors = parse_behavior_rows(
        behavior_rows,
        _context(assignment.behavior_sheet or "unknown", client, today, behavior_stats, resolvers, tracker, config),
    )
    metrics = parse_metric_rows(
        metric_rows,
        _context(assignment.metric_sheet or "unknown", client, today, metric_stats, resolvers, tracker, config),
    )
    monthly, activity = split_activity_metrics(metrics)

    issues.extend(_filter_issues("behavior ", behavior_stats, BEHAVIOR_REQUIRED, config))
    issues.extend(_filter_issues("metric ", metric_stats, METRIC_REQUIRED, config))
    normalization = tracker.summarize()
    issues.extend(_mapping_gap_issues(normalization))
    for issue in issues:
        log_warning(logger, issue)

    return WorkbookParseResult(
        behavior_records=behaviors,
        monthly_metric_records=monthly,
        activity_metric_records=activity,
        dataset_stats={"behavior": behavior_stats, "metric": metric_stats},
        sheet_assignment=assignment,
        issues=issues,
        normalization=normalization,
        meta={
            "workbook_name": workbook.name,
            "client": client,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "skip_date_filter": config.ingest.skip_date_filter,
        },
    )


def _parse_sheet_rows(
    rows: Rows,
    sheet_name: str,
    display_name: str,
    client: str,
    force_type: Optional[str],
    empty_issue: str,
    unknown_issue: str,
    config: Optional[AppConfig],
    resolvers: Optional[CanonicalResolvers],
    tracker: Optional[NormalizationTracker],
    today: Optional[date],
) -> SingleSheetParseResult:
    if force_type not in (None, "behaviors", "metrics"):
        raise ValueError(f"force_type must be 'behaviors' or 'metrics', got {force_type!r}")
    meta = {"client": client, "generated_at": datetime.now(timezone.utc).isoformat()}
    if not rows:
        return SingleSheetParseResult(sheet_name=display_name, detected_type="unknown", issues=[empty_issue], meta=meta)

    config, resolvers, tracker, today = _session(config, client, resolvers, tracker, today)
    tracker.reset()
    columns = RowAccessor(rows[0]).keys()
    logger.info("Single sheet %r columns: %s", display_name, columns)

    detected_type = force_type or detect_sheet_type(rows)
    result = SingleSheetParseResult(sheet_name=display_name, detected_type=detected_type, columns=columns, meta=meta)
    ctx = _context(sheet_name, client, today, result.stats, resolvers, tracker, config)

    if detected_type == "behaviors":
        result.behavior_records = parse_behavior_rows(rows, ctx)
        result.issues.extend(_filter_issues("", result.stats, BEHAVIOR_REQUIRED, config))
    elif detected_type == "metrics":
        monthly, activity = split_activity_metrics(parse_metric_rows(rows, ctx))
        result.monthly_metric_records = monthly
        result.activity_metric_records = activity
        result.issues.extend(_filter_issues("", result.stats, METRIC_REQUIRED, config))
    else:
        result.issues.append(unknown_issue)
        result.issues.append(f"Detected columns: {', '.join(columns)}")

    result.normalization = tracker.summarize()
    result.issues.extend(_mapping_gap_issues(result.normalization))
    for issue in result.issues:
        log_warning(logger, issue)
    return result


def parse_single_sheet(
    workbook: WorkbookSource,
    *,
    sheet_name: Optional[str] = None,
    force_type: Optional[str] = None,
    config: Optional[AppConfig] = None,
    client_override: Optional[str] = None,
    resolvers: Optional[CanonicalResolvers] = None,
    tracker: Optional[NormalizationTracker] = None,
    today: Optional[date] = None,
) -> SingleSheetParseResult:
    """Parse one sheet holding either behavior or metric data.

    Without ``sheet_name`` the first sheet is used. A ``sheet_name`` missing
    from the workbook also falls back to the first sheet and is reported in
    ``issues``. ``force_type`` skips detection.
    """
    if not workbook.sheet_names:
        raise WorkbookStructureError("The uploaded workbook does not contain any sheets.")
    chosen = sheet_name if sheet_name in workbook.sheet_names else workbook.sheet_names[0]
    client = client_override or infer_client_from_file(workbook.name)
    result = _parse_sheet_rows(
        workbook.rows(chosen),
        chosen,
        chosen,
        client,
        force_type,
        "Sheet is empty or has no data rows.",
        "Could not auto-detect sheet type. Please specify whether this is behavioral or metrics data.",
        config,
        resolvers,
        tracker,
        today,
    )
    if sheet_name and sheet_name != chosen:
        fallback = f"Sheet {sheet_name!r} not found in workbook; parsed first sheet {chosen!r} instead"
        log_warning(logger, fallback)
        result.issues.insert(0, fallback)
    return result


def parse_csv(
    source: WorkbookSource,
    *,
    force_type: Optional[str] = None,
    config: Optional[AppConfig] = None,
    client_override: Optional[str] = None,
    resolvers: Optional[CanonicalResolvers] = None,
    tracker: Optional[NormalizationTracker] = None,
    today: Optional[date] = None,
) -> SingleSheetParseResult:
    """Parse a CSV upload; records carry the file name as their source sheet."""
    client = client_override or re.sub(r"\.csv$", "", source.name, flags=re.IGNORECASE)
    sheet = source.sheet_names[0] if source.sheet_names else source.name
    return _parse_sheet_rows(
        source.rows(sheet),
        source.name,
        source.name,
        client,
        force_type,
        "CSV file is empty or has no data rows.",
        "Could not auto-detect data type from CSV. Please specify whether this is behavioral or metrics data.",
        config,
        resolvers,
        tracker,
        today,
    )


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Coaching/KPI workbook ingestion and name reconciliation")
    p.add_argument("--input", required=True, help="Path to the .xlsx workbook or .csv file")
    p.add_argument("--output", required=True, help="Directory for the JSON report and preview CSVs")
    p.add_argument("--config", required=False, help="Path to YAML config")
    p.add_argument("--client", required=False, help="Client tag; inferred from the file name when omitted")
    p.add_argument("--mode", choices=["workbook", "single"], default="workbook", help="Combined workbook or one sheet")
    p.add_argument("--behavior-sheet", required=False, help="Sheet holding behavior data")
    p.add_argument("--metric-sheet", required=False, help="Sheet holding metric data")
    p.add_argument("--sheet", required=False, help="Sheet to read in single mode")
    p.add_argument("--type", choices=["behaviors", "metrics"], required=False, help="Force the single-sheet data type")
    p.add_argument("--apply-date-filter", action="store_true", help="Drop rows whose month closed too recently")
    p.add_argument("--today", required=False, help="Reference date (YYYY-MM-DD) for the recency filter")
    return p.parse_args(argv)


def run(args: argparse.Namespace) -> Dict[str, Path]:
    config = load_config(args.config)
    if args.apply_date_filter:
        config.ingest.skip_date_filter = False
    setup_logging(config.logging.model_dump(), Path(args.output))
    today = date.fromisoformat(args.today) if args.today else None

    input_path = Path(args.input)
    if input_path.suffix.lower() == ".csv":
        result = parse_csv(
            read_csv_source(input_path),
            force_type=args.type,
            config=config,
            client_override=args.client,
            today=today,
        )
    elif args.mode == "single":
        result = parse_single_sheet(
            read_workbook(input_path),
            sheet_name=args.sheet,
            force_type=args.type,
            config=config,
            client_override=args.client,
            today=today,
        )
    else:
        result = parse_workbook(
            read_workbook(input_path),
            config=config,
            client_override=args.client,
            behavior_sheet_hint=args.behavior_sheet,
            metric_sheet_hint=args.metric_sheet,
            today=today,
        )
    paths = write_outputs(result, args.output)
    log_system_event(logger, f"Report written to {paths['report']}")
    return paths


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        run(args)
    except (WorkbookStructureError, FileNotFoundError) as exc:
        logger.error("Ingestion failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
