"""Decode xlsx/csv uploads into ordered, string-keyed rows per sheet."""
from __future__ import annotations

import io
import math
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from ..logging_utils import get_logger, log_system_event

logger = get_logger("ingest")

Source = Union[str, Path, bytes, io.BytesIO]

Rows = List[Dict[str, Any]]

_READ_ERRORS = (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException)


class WorkbookStructureError(ValueError):
    """The workbook cannot be parsed as a whole (no sheets, bad hint, unreadable)."""


@dataclass
class WorkbookSource:
    name: str
    sheet_names: List[str] = field(default_factory=list)
    sheets: Dict[str, Rows] = field(default_factory=dict)

    def rows(self, sheet_name: str) -> Rows:
        return self.sheets.get(sheet_name, [])

    def row_count(self, sheet_name: str) -> int:
        return len(self.rows(sheet_name))

    def iter_sheets(self):
        for name in self.sheet_names:
            yield name, self.rows(name)

    @classmethod
    def from_rows(cls, name: str, sheets: Dict[str, Rows]) -> "WorkbookSource":
        """Build a source from already-decoded rows; dict order is sheet order."""
        return cls(name=name, sheet_names=list(sheets.keys()), sheets={k: list(v) for k, v in sheets.items()})


def _as_buffer(source: Source):
    if isinstance(source, bytes):
        return io.BytesIO(source)
    return source


def _clean_header(column: object) -> str:
    text = str(column).strip()
    # pandas labels blank headers "Unnamed: <n>"
    if text.startswith("Unnamed:"):
        return ""
    return text


def _clean_cell(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def frame_to_rows(df: pd.DataFrame) -> Rows:
    headers = [_clean_header(c) for c in df.columns]
    rows: Rows = []
    for values in df.itertuples(index=False, name=None):
        row: Dict[str, Any] = {}
        for header, value in zip(headers, values):
            if header in row:
                continue
            row[header] = _clean_cell(value)
        # fully blank lines are not data rows
        if any(v is not None and not (isinstance(v, str) and not v.strip()) for v in row.values()):
            rows.append(row)
    return rows


def get_sheet_names(source: Source) -> List[str]:
    try:
        with pd.ExcelFile(_as_buffer(source), engine="openpyxl") as xls:
            return [str(s) for s in xls.sheet_names]
    except _READ_ERRORS as exc:
        raise WorkbookStructureError(f"Unable to read workbook: {exc}") from exc


def read_workbook(source: Source, name: str | None = None) -> WorkbookSource:
    """Read every sheet of an xlsx workbook, preserving sheet order."""
    if name is None:
        name = Path(source).name if isinstance(source, (str, Path)) else "workbook.xlsx"
    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise FileNotFoundError(f"Input not found: {source}")
    try:
        frames = pd.read_excel(_as_buffer(source), sheet_name=None, dtype=object, engine="openpyxl")
    except _READ_ERRORS as exc:
        raise WorkbookStructureError(f"Unable to read workbook {name}: {exc}") from exc

    workbook = WorkbookSource(name=name)
    for sheet_name, df in frames.items():
        sheet_name = str(sheet_name)
        workbook.sheet_names.append(sheet_name)
        workbook.sheets[sheet_name] = frame_to_rows(df)
    log_system_event(
        logger,
        f"Read {name}: " + ", ".join(f"{s}={workbook.row_count(s)} rows" for s in workbook.sheet_names),
    )
    return workbook


def read_csv_source(source: Source, name: str | None = None) -> WorkbookSource:
    """Read a CSV upload as a single-sheet workbook named after the file stem."""
    if name is None:
        name = Path(source).name if isinstance(source, (str, Path)) else "upload.csv"
    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise FileNotFoundError(f"Input not found: {source}")
    try:
        df = pd.read_csv(_as_buffer(source), dtype=object, keep_default_na=False, encoding="utf-8-sig")
    except pd.errors.EmptyDataError:
        df = pd.DataFrame()
    except (OSError, ValueError, pd.errors.ParserError) as exc:
        raise WorkbookStructureError(f"Unable to read CSV {name}: {exc}") from exc
    sheet_name = Path(name).stem or "Sheet1"
    return WorkbookSource(name=name, sheet_names=[sheet_name], sheets={sheet_name: frame_to_rows(df)})


def read_source(path: str | Path) -> WorkbookSource:
    p = Path(path)
    if p.suffix.lower() == ".csv":
        return read_csv_source(p)
    return read_workbook(p)
