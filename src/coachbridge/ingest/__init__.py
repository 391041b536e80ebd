"""
Workbook ingestion: sheet detection, row transformation and normalization
tracking for coaching and KPI uploads.
"""

from .loader import infer_client_from_file, parse_csv, parse_single_sheet, parse_workbook
from .workbook_reader import WorkbookSource, WorkbookStructureError, read_csv_source, read_workbook

__all__ = [
    "infer_client_from_file",
    "parse_csv",
    "parse_single_sheet",
    "parse_workbook",
    "WorkbookSource",
    "WorkbookStructureError",
    "read_csv_source",
    "read_workbook",
]
