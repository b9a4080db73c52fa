from __future__ import annotations

import re
import pandas as pd
from typing import List, Tuple
from functools import lru_cache

from .daycount import to_timestamp


_TENOR_RE = re.compile(r"^\s*(\d+)\s*([DWMY])\s*$", re.IGNORECASE)

BUSINESS_DAY_CONVENTIONS = ("following", "modified_following", "preceding", "none")


def parse_tenor(tenor: str) -> pd.DateOffset:
    """
    Parse a tenor string ("2D", "1W", "3M", "10Y") into a calendar offset.

    Months and years are calendar offsets (end-of-month clipped by pandas),
    not fixed day counts.
    """
    m = _TENOR_RE.match(str(tenor))
    if m is None:
        raise ValueError(f"Invalid tenor: {tenor!r}")

    n = int(m.group(1))
    if n <= 0:
        raise ValueError(f"Tenor must be positive: {tenor!r}")

    unit = m.group(2).upper()
    if unit == "D":
        return pd.DateOffset(days=n)
    if unit == "W":
        return pd.DateOffset(weeks=n)
    if unit == "M":
        return pd.DateOffset(months=n)
    return pd.DateOffset(years=n)


def tenor_to_years(tenor: str) -> float:
    """Nominal tenor length in years (3M -> 0.25, 1W -> 7/365), used for ordering quotes."""
    m = _TENOR_RE.match(str(tenor))
    if m is None:
        raise ValueError(f"Invalid tenor: {tenor!r}")

    n = int(m.group(1))
    unit = m.group(2).upper()
    return {"D": n / 365.0, "W": 7 * n / 365.0, "M": n / 12.0, "Y": float(n)}[unit]


def is_business_day(d) -> bool:
    """Weekday check only; no holiday calendar."""
    return to_timestamp(d).dayofweek < 5


def adjust_business_day(d, convention: str = "following") -> pd.Timestamp:
    d = to_timestamp(d)
    convention = convention.lower()

    if convention == "none":
        return d

    if convention == "following":
        while not is_business_day(d):
            d = d + pd.Timedelta(days=1)
        return d

    if convention == "preceding":
        while not is_business_day(d):
            d = d - pd.Timedelta(days=1)
        return d

    if convention == "modified_following":
        adjusted = adjust_business_day(d, "following")
        if adjusted.month != d.month:
            return adjust_business_day(d, "preceding")
        return adjusted

    raise ValueError(f"Unknown business day convention: {convention}. Available: {BUSINESS_DAY_CONVENTIONS}")


def add_tenor(start, tenor: str, convention: str = "following") -> pd.Timestamp:
    """start + tenor, rolled to a business day."""
    return adjust_business_day(to_timestamp(start) + parse_tenor(tenor), convention)


def coupon_schedule(
    start,
    maturity,
    freq: int = 2,
    convention: str = "none",
    roll_date=None,
) -> List[pd.Timestamp]:
    """
    Coupon payment dates strictly after start, ending at maturity.

    The schedule is rolled back from `roll_date` (the unadjusted maturity,
    defaulting to `maturity`) in steps of 12/freq months, so any stub falls at
    the front. A front stub shorter than half the following period is merged
    into it (long first coupon). Every date but the final one is then rolled
    to a business day with `convention`; maturity is returned as given.
    """
    if freq not in (1, 2, 4, 12):
        raise NotImplementedError("Supported frequencies: 1, 2, 4, 12.")

    start = to_timestamp(start)
    maturity = to_timestamp(maturity)
    if maturity <= start:
        raise ValueError(f"Maturity {maturity.date()} must be after start {start.date()}.")
    anchor = maturity if roll_date is None else to_timestamp(roll_date)

    months = 12 // freq
    unadjusted: List[pd.Timestamp] = [anchor]
    k = 1
    while True:
        d = anchor - pd.DateOffset(months=months * k)
        if d <= start:
            break
        unadjusted.append(d)
        k += 1
    unadjusted.reverse()

    if len(unadjusted) > 1:
        stub = unadjusted[0] - start
        regular = unadjusted[1] - unadjusted[0]
        if stub < regular / 2:
            unadjusted = unadjusted[1:]

    dates = [adjust_business_day(d, convention) for d in unadjusted[:-1]]
    dates.append(maturity)
    return dates


@lru_cache(maxsize=10_000)
def accrual_periods(
    start,
    maturity,
    freq: int = 2,
    convention: str = "none",
    roll_date=None,
) -> Tuple[Tuple[pd.Timestamp, pd.Timestamp], ...]:
    """(accrual_start, payment_date) pairs; the first period accrues from start."""
    start = to_timestamp(start)
    pay_dates = coupon_schedule(start, maturity, freq, convention, roll_date)

    periods = []
    prev = start
    for d in pay_dates:
        periods.append((prev, d))
        prev = d
    return tuple(periods)
