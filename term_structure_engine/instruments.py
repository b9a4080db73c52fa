from __future__ import annotations

import numpy as np
import pandas as pd
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, List, Optional

from .daycount import ACT_360, THIRTY_360, DayCountConvention, get_day_count_convention, to_timestamp
from .utils import BUSINESS_DAY_CONVENTIONS, accrual_periods, add_tenor, adjust_business_day, parse_tenor


class InstrumentType(str, Enum):
    DEPOSIT = "deposit"
    FUTURE = "future"
    SWAP = "swap"


@dataclass(frozen=True)
class MarketInstrument(ABC):
    """
    Calibration instrument: a quote to be matched by a zero curve.

    `implied_quote(curve)` only needs `curve.discount_factor(date)`, so any
    curve (or trial curve during bootstrapping) can price it.
    """
    start_date: pd.Timestamp
    maturity_date: pd.Timestamp
    quote: float
    day_count: DayCountConvention = ACT_360

    instrument_type: ClassVar[InstrumentType]

    def __post_init__(self):
        start = to_timestamp(self.start_date)
        maturity = to_timestamp(self.maturity_date)
        if maturity <= start:
            raise ValueError(
                f"{self.instrument_type.value}: maturity {maturity.date()} must be after start {start.date()}."
            )
        if not np.isfinite(float(self.quote)):
            raise ValueError(f"{self.instrument_type.value}: quote must be finite, got {self.quote}.")

        object.__setattr__(self, "start_date", start)
        object.__setattr__(self, "maturity_date", maturity)
        object.__setattr__(self, "quote", float(self.quote))
        object.__setattr__(self, "day_count", get_day_count_convention(self.day_count))

    @classmethod
    def from_tenor(
        cls,
        reference_date,
        tenor: str,
        quote: float,
        forward_start: Optional[str] = None,
        convention: str = "following",
        **kwargs,
    ):
        """
        Instrument starting at reference_date (or forward_start after it) and
        maturing `tenor` later, both dates rolled by `convention`.
        """
        start = to_timestamp(reference_date)
        if forward_start is not None:
            start = add_tenor(start, forward_start, convention)
        return cls(start, add_tenor(start, tenor, convention), quote, **kwargs)

    @property
    def label(self) -> str:
        return f"{self.instrument_type.value} {self.start_date.date()}->{self.maturity_date.date()} @ {self.quote:g}"

    @property
    def accrual(self) -> float:
        return self.day_count.year_fraction(self.start_date, self.maturity_date)

    def maturity_time(self, reference_date, day_count="ACT/365") -> float:
        """Maturity on a curve's time axis."""
        return get_day_count_convention(day_count).year_fraction(reference_date, self.maturity_date)

    @abstractmethod
    def implied_quote(self, curve) -> float:
        """Quote implied by the curve, in the same units as `quote`."""

    def pricing_error(self, curve) -> float:
        return self.implied_quote(curve) - self.quote

    @abstractmethod
    def rate_guess(self) -> float:
        """Continuously-compounded zero rate used to seed the bootstrap solve."""


@dataclass(frozen=True)
class Deposit(MarketInstrument):
    """Money-market deposit quoted as a simple rate: DF(T) = DF(S) / (1 + q tau)."""

    instrument_type: ClassVar[InstrumentType] = InstrumentType.DEPOSIT

    def implied_quote(self, curve) -> float:
        df_s = curve.discount_factor(self.start_date)
        df_t = curve.discount_factor(self.maturity_date)
        return (df_s / df_t - 1.0) / self.accrual

    def rate_guess(self) -> float:
        tau = self.accrual
        return float(np.log1p(self.quote * tau) / tau)


@dataclass(frozen=True)
class RateFuture(MarketInstrument):
    """
    Short-rate future quoted as a price 100 * (1 - F) on the simple forward
    rate F over [start, maturity]. No convexity adjustment.
    """

    instrument_type: ClassVar[InstrumentType] = InstrumentType.FUTURE

    @property
    def forward_rate(self) -> float:
        return 1.0 - self.quote / 100.0

    def implied_quote(self, curve) -> float:
        df_s = curve.discount_factor(self.start_date)
        df_e = curve.discount_factor(self.maturity_date)
        fwd = (df_s / df_e - 1.0) / self.accrual
        return 100.0 * (1.0 - fwd)

    def rate_guess(self) -> float:
        return self.forward_rate


@dataclass(frozen=True)
class Swap(MarketInstrument):
    """
    Par swap, fixed leg against a single-curve float leg.

    Float leg PV = DF(S) - DF(T); fixed coupons every 12/freq months, rolled
    back from `roll_date` (the unadjusted maturity, default maturity_date),
    paid on business days under `convention` and accrued under `day_count`.
    """
    day_count: DayCountConvention = THIRTY_360
    freq: int = 2
    convention: str = "following"
    roll_date: Optional[pd.Timestamp] = None

    instrument_type: ClassVar[InstrumentType] = InstrumentType.SWAP

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "freq", int(self.freq))
        if self.freq not in (1, 2, 4, 12):
            raise NotImplementedError(f"Supported frequencies: 1, 2, 4, 12; got {self.freq}.")
        convention = str(self.convention).lower()
        if convention not in BUSINESS_DAY_CONVENTIONS:
            raise ValueError(
                f"Unknown business day convention: {self.convention}. Available: {BUSINESS_DAY_CONVENTIONS}"
            )
        object.__setattr__(self, "convention", convention)
        if self.roll_date is not None:
            object.__setattr__(self, "roll_date", to_timestamp(self.roll_date))

    @classmethod
    def from_tenor(
        cls,
        reference_date,
        tenor: str,
        quote: float,
        forward_start: Optional[str] = None,
        convention: str = "following",
        **kwargs,
    ):
        start = to_timestamp(reference_date)
        if forward_start is not None:
            start = add_tenor(start, forward_start, convention)
        end = start + parse_tenor(tenor)
        return cls(
            start,
            adjust_business_day(end, convention),
            quote,
            convention=convention,
            roll_date=end,
            **kwargs,
        )

    @property
    def periods(self):
        return accrual_periods(self.start_date, self.maturity_date, self.freq, self.convention, self.roll_date)

    def annuity(self, curve) -> float:
        """Sum of tau_i * DF(t_i) over the fixed leg."""
        return sum(
            self.day_count.year_fraction(a, b) * curve.discount_factor(b) for a, b in self.periods
        )

    def implied_quote(self, curve) -> float:
        df_s = curve.discount_factor(self.start_date)
        df_t = curve.discount_factor(self.maturity_date)
        return (df_s - df_t) / self.annuity(curve)

    def rate_guess(self) -> float:
        return self.quote


INSTRUMENT_TYPES = {
    "deposit": Deposit,
    "bill": Deposit,
    "future": RateFuture,
    "swap": Swap,
    "note": Swap,
}


def instruments_from_frame(market: pd.DataFrame, reference_date) -> List[MarketInstrument]:
    """
    Build instruments from a market-data frame.

    Required columns: type, maturity, quote. Optional: start (defaults to
    reference_date), day_count, coupon_freq (swaps only).
    """
    missing = {"type", "maturity", "quote"} - set(market.columns)
    if missing:
        raise ValueError(f"Market data is missing columns: {sorted(missing)}")

    reference_date = to_timestamp(reference_date)
    out: List[MarketInstrument] = []

    for _, row in market.iterrows():
        kind = str(row["type"]).strip().lower()
        if kind not in INSTRUMENT_TYPES:
            raise ValueError(f"Unknown instrument type: {row['type']}. Available: {sorted(INSTRUMENT_TYPES)}")
        cls = INSTRUMENT_TYPES[kind]

        start = row.get("start")
        start = reference_date if start is None or pd.isna(start) else start

        kwargs = {}
        dc = row.get("day_count")
        if dc is not None and not pd.isna(dc):
            kwargs["day_count"] = str(dc)
        freq = row.get("coupon_freq")
        if cls is Swap and freq is not None and not pd.isna(freq):
            kwargs["freq"] = int(freq)

        out.append(cls(start, row["maturity"], float(row["quote"]), **kwargs))

    return out
