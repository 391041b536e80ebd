from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Optional

import pandas as pd

_WS_RX = re.compile(r"\s+")


def collapse_ws(value: str) -> str:
    return _WS_RX.sub(" ", value).strip()


def upper_collapse(value: str) -> str:
    """The trivial canonical form: upper-cased, single spaces, trimmed."""
    return collapse_ws(value).upper()


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def coerce_string(value: object) -> Optional[str]:
    """Render a cell as trimmed text with inner whitespace collapsed.

    Integral floats (Excel stores ``2024`` as ``2024.0``) render without the
    decimal part; dates render as ISO strings. Blank cells give None.
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        text = str(value)
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    elif isinstance(value, (datetime, date)):
        text = value.isoformat()
    else:
        text = str(value)
    text = collapse_ws(text)
    return text or None
