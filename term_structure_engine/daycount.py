from __future__ import annotations

import numpy as np
import pandas as pd
from abc import ABC, abstractmethod
from typing import Dict, List, Tuple

from .errors import InvalidDateRangeError, UnsupportedConventionError


def to_timestamp(d) -> pd.Timestamp:
    """Normalise a date-like input to a midnight pd.Timestamp."""
    return pd.Timestamp(d).normalize()


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def year_length(year: int) -> int:
    return 366 if is_leap_year(year) else 365


def _checked_range(start, end) -> Tuple[pd.Timestamp, pd.Timestamp]:
    start = to_timestamp(start)
    end = to_timestamp(end)
    if end < start:
        raise InvalidDateRangeError(f"end < start: start={start.date()} end={end.date()}")
    return start, end


class DayCountConvention(ABC):
    """Stateless year-fraction strategy identified by its convention name."""

    name: str = ""

    def year_fraction(self, start, end) -> float:
        start, end = _checked_range(start, end)
        return self._year_fraction(start, end)

    def day_count(self, start, end) -> int:
        """Day numerator used by the convention (actual, 30/360 or business days)."""
        start, end = _checked_range(start, end)
        return self._day_count(start, end)

    @abstractmethod
    def _year_fraction(self, start: pd.Timestamp, end: pd.Timestamp) -> float:
        ...

    def _day_count(self, start: pd.Timestamp, end: pd.Timestamp) -> int:
        return (end - start).days

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Actual365(DayCountConvention):
    """Actual days / 365. Default time axis for zero curves."""

    name = "Actual/365"

    def _year_fraction(self, start, end):
        return (end - start).days / 365.0


class Actual360(DayCountConvention):
    """Actual days / 360. Money-market deposits and futures."""

    name = "Actual/360"

    def _year_fraction(self, start, end):
        return (end - start).days / 360.0


class ActualActual(DayCountConvention):
    """
    Actual/Actual, weighted by calendar-year length.

    - Same calendar year: actual days / length of that year.
    - Across years: the interval is split at every 1 January; days and year
      lengths of the contributing years are summed and the day total is divided
      by the average contributing year length.

    This is its own variant. It is NOT ISDA or ICMA Act/Act.
    """

    name = "Actual/Actual"

    def _year_fraction(self, start, end):
        if start.year == end.year:
            return (end - start).days / year_length(start.year)

        total_days = 0
        total_year_days = 0
        n_years = 0
        for year in range(start.year, end.year + 1):
            period_start = max(start, pd.Timestamp(year=year, month=1, day=1))
            period_end = min(end, pd.Timestamp(year=year + 1, month=1, day=1))
            if period_end > period_start:
                total_days += (period_end - period_start).days
                total_year_days += year_length(year)
                n_years += 1

        return total_days / (total_year_days / n_years)


class Thirty360(DayCountConvention):
    """30/360 (US bond basis day adjustment)."""

    name = "30/360"

    def _day_count(self, start, end):
        y1, m1, d1 = start.year, start.month, start.day
        y2, m2, d2 = end.year, end.month, end.day

        if d1 == 31:
            d1 = 30
        if d2 == 31 and d1 >= 30:
            d2 = 30

        return 360 * (y2 - y1) + 30 * (m2 - m1) + (d2 - d1)

    def _year_fraction(self, start, end):
        return self._day_count(start, end) / 360.0


class Business252(DayCountConvention):
    """
    Weekdays in [start, end) / 252.

    Weekends only; there is no holiday calendar, so jurisdiction holidays are
    counted as business days.
    """

    name = "Business/252"

    def _day_count(self, start, end):
        return int(np.busday_count(start.date(), end.date()))

    def _year_fraction(self, start, end):
        return self._day_count(start, end) / 252.0


ACT_365 = Actual365()
ACT_360 = Actual360()
ACT_ACT = ActualActual()
THIRTY_360 = Thirty360()
BUS_252 = Business252()

_CANONICAL: Tuple[DayCountConvention, ...] = (ACT_365, ACT_360, ACT_ACT, THIRTY_360, BUS_252)

# Keys are upper-case with whitespace removed.
DAY_COUNT_CONVENTIONS: Dict[str, DayCountConvention] = {
    "ACT/365": ACT_365,
    "ACT/365F": ACT_365,
    "ACTUAL/365": ACT_365,
    "ACT/360": ACT_360,
    "ACTUAL/360": ACT_360,
    "ACT/ACT": ACT_ACT,
    "ACTUAL/ACTUAL": ACT_ACT,
    "30/360": THIRTY_360,
    "30/360US": THIRTY_360,
    "BUS/252": BUS_252,
    "BUSINESS/252": BUS_252,
}


def _normalise_name(name: str) -> str:
    return "".join(str(name).upper().split())


def get_day_count_convention(convention) -> DayCountConvention:
    """
    Look up a day-count convention by name (case and whitespace insensitive).

    A DayCountConvention instance is passed through unchanged.
    """
    if isinstance(convention, DayCountConvention):
        return convention

    key = _normalise_name(convention)
    if key not in DAY_COUNT_CONVENTIONS:
        raise UnsupportedConventionError(
            f"Unsupported day count convention: {convention}. "
            f"Available: {sorted(DAY_COUNT_CONVENTIONS)}"
        )
    return DAY_COUNT_CONVENTIONS[key]


def available_conventions() -> List[DayCountConvention]:
    """The five registered conventions, one instance each."""
    return list(_CANONICAL)


def yearfrac(start, end, convention="ACT/365") -> float:
    """Year fraction between two dates under a day count convention."""
    return get_day_count_convention(convention).year_fraction(start, end)
