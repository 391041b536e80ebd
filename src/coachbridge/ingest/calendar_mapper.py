"""Month/year extraction from period cells and the month-recency rule.

Period cells arrive as Excel date serials, date objects or free text such as
``"Jun-25"`` or ``"September 2024"``. Everything is read on UTC calendar days.
"""
from __future__ import annotations

import calendar
import math
import numbers
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pandas as pd

MONTH_CODES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

# Excel's day zero, chosen so that serial 60 lands on the phantom 1900-02-29
EXCEL_EPOCH = datetime(1899, 12, 30)

DEFAULT_RECENCY_DAYS = 9

_MONTH_RX = re.compile(
    r"(jan(uary)?|feb(ruary)?|mar(ch)?|apr(il)?|may|jun(e)?|jul(y)?|aug(ust)?"
    r"|sep(t)?(ember)?|oct(ober)?|nov(ember)?|dec(ember)?)"
)
_YEAR_RX = re.compile(r"(20\d{2}|19\d{2}|\d{2})")


@dataclass(frozen=True)
class Period:
    month: Optional[str] = None
    year: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return self.month is not None and self.year is not None

    @property
    def month_number(self) -> Optional[int]:
        if self.month is None:
            return None
        return MONTH_CODES.index(self.month) + 1


EMPTY_PERIOD = Period()


def excel_serial_to_date(serial: float) -> date:
    return (EXCEL_EPOCH + timedelta(days=float(serial))).date()


def _from_date(value: date) -> Period:
    return Period(MONTH_CODES[value.month - 1], value.year)


def _from_datetime(value: datetime) -> Period:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return _from_date(value.date())


def _from_text(text: str) -> Period:
    lowered = text.lower()
    month_match = _MONTH_RX.search(lowered)
    year_match = _YEAR_RX.search(lowered)
    if not month_match or not year_match:
        return EMPTY_PERIOD
    # "sept", "september" and "sep" all start with the same three letters
    code = month_match.group(1)[:3].capitalize()
    year = int(year_match.group(1))
    if year < 100:
        year += 2000
    return Period(code, year)


def parse_period(raw: object) -> Period:
    """Return the month code and year of a period cell; never raises.

    Incomplete or unrecognised input yields ``Period(None, None)``.
    """
    if raw is None or isinstance(raw, bool) or raw is pd.NaT:
        return EMPTY_PERIOD
    if isinstance(raw, pd.Timestamp):
        return _from_datetime(raw.to_pydatetime())
    if isinstance(raw, datetime):
        return _from_datetime(raw)
    if isinstance(raw, date):
        return _from_date(raw)
    if isinstance(raw, numbers.Real):
        value = float(raw)
        if not math.isfinite(value):
            return EMPTY_PERIOD
        try:
            return _from_date(excel_serial_to_date(value))
        except (OverflowError, ValueError):
            return EMPTY_PERIOD
    if isinstance(raw, str):
        return _from_text(raw)
    return EMPTY_PERIOD


def month_end(period: Period) -> date:
    if not period.is_complete:
        raise ValueError(f"Cannot compute month end for incomplete period {period}")
    last_day = calendar.monthrange(period.year, period.month_number)[1]
    return date(period.year, period.month_number, last_day)


def is_month_old_enough(period: Period, today: date, min_days: int = DEFAULT_RECENCY_DAYS) -> bool:
    """True once at least ``min_days`` whole days have passed since month end."""
    if isinstance(today, datetime):
        today = _utc_date(today)
    return (today - month_end(period)).days >= min_days


def _utc_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def utc_today() -> date:
    return datetime.now(timezone.utc).date()
