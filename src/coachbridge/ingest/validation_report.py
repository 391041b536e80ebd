from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .transformers import BehaviorRecord, MetricRecord, Record


def records_to_frame(records: Iterable[Record]) -> pd.DataFrame:
    """Tabular preview of records; the raw source row is never included."""
    return pd.DataFrame([r.to_public_dict() for r in records])


def _columns_for(record_type) -> List[str]:
    return [f.name for f in fields(record_type) if f.name != "raw"]


def write_preview_csv(records: List[Record], path: str | Path, record_type=None) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    df = records_to_frame(records)
    if df.empty and record_type is not None:
        df = pd.DataFrame(columns=_columns_for(record_type))
    df.to_csv(out, index=False)
    return out


def _sample(records: List[Record], limit: int) -> List[Dict[str, Any]]:
    return [r.to_public_dict() for r in records[:limit]]


def build_report(result, sample_size: int = 5) -> Dict[str, Any]:
    """JSON-friendly summary of a workbook or single-sheet parse.

    Accepts either result type; dataset stats, sheet assignment, issues and the
    normalization summary are copied through and record samples are attached.
    """
    behaviors = list(result.behavior_records)
    monthly = list(result.monthly_metric_records)
    activity = list(result.activity_metric_records)

    report: Dict[str, Any] = {
        "meta": dict(result.meta),
        "counts": {
            "behaviors": len(behaviors),
            "monthly_metrics": len(monthly),
            "activity_metrics": len(activity),
        },
        "dataset_stats": {k: v.to_dict() for k, v in result.dataset_stats.items()},
        "issues": list(result.issues),
        "normalization": result.normalization.to_dict(),
        "samples": {
            "behaviors": _sample(behaviors, sample_size),
            "monthly_metrics": _sample(monthly, sample_size),
            "activity_metrics": _sample(activity, sample_size),
        },
    }
    assignment = getattr(result, "sheet_assignment", None)
    if assignment is not None:
        report["sheet_assignment"] = {
            "behavior_sheet": assignment.behavior_sheet,
            "metric_sheet": assignment.metric_sheet,
        }
    return report


def write_report(report: Dict[str, Any], out_path: str | Path) -> Path:
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, default=str)
    return p


def write_outputs(result, output_dir: str | Path, report_name: Optional[str] = None) -> Dict[str, Path]:
    """Write the JSON report and one preview CSV per record bucket."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    paths = {
        "report": write_report(build_report(result), out / (report_name or "ingest_report.json")),
        "behaviors": write_preview_csv(result.behavior_records, out / "behaviors_preview.csv", BehaviorRecord),
        "monthly_metrics": write_preview_csv(result.monthly_metric_records, out / "monthly_metrics_preview.csv", MetricRecord),
        "activity_metrics": write_preview_csv(result.activity_metric_records, out / "activity_metrics_preview.csv", MetricRecord),
    }
    return paths
