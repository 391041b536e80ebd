import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))


@pytest.fixture
def make_workbook(tmp_path):
    """Write ``{sheet_name: [row dicts]}`` to an xlsx file and return its path."""

    def _make(sheets, name="uhc_data.xlsx"):
        path = tmp_path / name
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet_name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, index=False)
        return path

    return _make


@pytest.fixture
def behavior_rows():
    return [
        {
            "Month": "Jun-25",
            "Organization": "United Health Group",
            "Program": "Retention",
            "Metric": "Chat NPS",
            "Behavior": "Empathy",
            "Sub-Behavior": "Acknowledge",
            "Coaching Count": 42,
            "Effectiveness%": "55%",
        },
        {
            "Month": "Jun-25",
            "Organization": "Acme Widgets",
            "Program": "Sales",
            "Metric": "Upsell Rate",
            "Behavior": "Discovery",
            "Sub-Behavior": "Probing",
            "Coaching Count": 7,
            "Effectiveness%": 61.5,
        },
    ]


@pytest.fixture
def metric_rows():
    return [
        {
            "Month": "Jun-25",
            "Organization": "United Health Group",
            "Program": "Retention",
            "Metric": "Average Handle Time",
            "Actual": 410,
            "Goal": 420,
            "PTG": "98%",
        },
        {
            "Month": "Jun-25",
            "Organization": "T-Mobile",
            "Program": "ACTIVITY METRICS",
            "Metric": "Calls Taken",
            "Actual": "1,250",
            "Goal": 1200,
            "PTG": "104%",
        },
    ]


@pytest.fixture(autouse=True)
def fresh_alias_sources():
    from coachbridge.mappings.alias_store import clear_shared_sources

    clear_shared_sources()
    yield
    clear_shared_sources()
