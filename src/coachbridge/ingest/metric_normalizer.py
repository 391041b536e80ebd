from __future__ import annotations

import numbers
import re
from typing import Optional

import numpy as np

from ..common.text_normalizer import collapse_ws, is_blank

_NUMERIC_NOISE_RX = re.compile(r"[,%]")


def to_number(value: object) -> Optional[float]:
    """Tolerant numeric coercion for measure and count cells.

    ``"55%"`` -> 55.0, ``"1,234"`` -> 1234.0; percentages are not rescaled and
    fractional values are kept as they are. Blank, unparsable and non-finite
    input returns None instead of raising.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        result = float(value)
        return result if np.isfinite(result) else None
    cleaned = _NUMERIC_NOISE_RX.sub("", collapse_ws(str(value))).strip()
    # float() accepts digit grouping underscores, spreadsheets never write them
    if not cleaned or "_" in cleaned:
        return None
    try:
        result = float(cleaned)
    except ValueError:
        return None
    return result if np.isfinite(result) else None
