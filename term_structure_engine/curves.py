from __future__ import annotations

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Callable, Iterable, Tuple, Union

from .daycount import ACT_365, DayCountConvention, get_day_count_convention, to_timestamp
from .errors import EmptyPointSetError, NegativeRateOrVolError
from .interpolation import InterpolationMethod, create_interpolator


@dataclass(frozen=True)
class CurvePoint:
    """(time in years, continuously-compounded zero rate) knot."""
    time: float
    zero_rate: float

    def __post_init__(self):
        object.__setattr__(self, "time", float(self.time))
        object.__setattr__(self, "zero_rate", float(self.zero_rate))
        if not np.isfinite(self.time) or self.time < 0:
            raise ValueError(f"Curve point time must be finite and >= 0, got {self.time}.")
        if not np.isfinite(self.zero_rate):
            raise ValueError(f"Curve point rate must be finite, got {self.zero_rate}.")

    @property
    def discount_factor(self) -> float:
        return float(np.exp(-self.zero_rate * self.time))

    @classmethod
    def from_discount_factor(cls, time: float, discount_factor: float) -> "CurvePoint":
        if time <= 0:
            raise ValueError(f"Time must be > 0 to imply a zero rate, got {time}.")
        if not discount_factor > 0:
            raise ValueError(f"Discount factor must be > 0, got {discount_factor}.")
        return cls(time, -np.log(discount_factor) / time)


PointLike = Union[CurvePoint, Tuple[float, float]]


class BaseCurve:
    """
    Date and vector queries shared by every zero curve.

    Subclasses provide `zero_rate_at(t)`; everything else is derived from it
    with continuous compounding, DF(t) = exp(-r(t) t).
    """

    interpolation_method = InterpolationMethod.LINEAR

    def time_of(self, date) -> float:
        """Year fraction from the reference date under the curve day count."""
        return self.day_count.year_fraction(self.reference_date, date)

    def zero_rate_at(self, t: float) -> float:
        raise NotImplementedError

    def discount_factor_at(self, t: float) -> float:
        if t < 0:
            raise ValueError(f"Time must be >= 0, got {t}.")
        return float(np.exp(-self.zero_rate_at(t) * t))

    def zero_rate(self, date) -> float:
        return self.zero_rate_at(self.time_of(date))

    def discount_factor(self, date) -> float:
        return self.discount_factor_at(self.time_of(date))

    def zero_rates(self, dates: Iterable) -> np.ndarray:
        return np.array([self.zero_rate(d) for d in dates], dtype=float)

    def df(self, dates: Iterable) -> np.ndarray:
        return np.array([self.discount_factor(d) for d in dates], dtype=float)

    def forward_rate(self, t1: float, t2: float) -> float:
        """Continuously-compounded forward rate between two year fractions."""
        if t1 < 0 or t2 <= t1:
            raise ValueError(f"Forward period needs 0 <= t1 < t2, got t1={t1} t2={t2}.")
        r1 = self.zero_rate_at(t1)
        r2 = self.zero_rate_at(t2)
        return (r2 * t2 - r1 * t1) / (t2 - t1)


@dataclass(frozen=True, eq=False)
class ZeroCurve(BaseCurve):
    """
    Zero curve over (time, zero rate) knots.

    Compares and hashes by identity; compare `times` and `rates` for value
    equality.

    - LINEAR: flat extrapolation of the zero rate beyond the first/last knot.
    - CUBIC_SPLINE: natural spline, boundary cubic used beyond the knots.
    """
    currency: str
    reference_date: pd.Timestamp
    times: np.ndarray
    rates: np.ndarray
    interpolation_method: InterpolationMethod = InterpolationMethod.LINEAR
    day_count: DayCountConvention = ACT_365

    def __post_init__(self):
        interpolator = create_interpolator(self.interpolation_method, self.times, self.rates)
        if interpolator.xs[0] < 0:
            raise ValueError(f"Curve times must be >= 0, got {interpolator.xs[0]}.")

        object.__setattr__(self, "reference_date", to_timestamp(self.reference_date))
        object.__setattr__(self, "interpolation_method", InterpolationMethod.parse(self.interpolation_method))
        object.__setattr__(self, "day_count", get_day_count_convention(self.day_count))
        object.__setattr__(self, "times", interpolator.xs)
        object.__setattr__(self, "rates", interpolator.ys)
        object.__setattr__(self, "_interpolator", interpolator)

    def zero_rate_at(self, t: float) -> float:
        if t < 0:
            raise ValueError(f"Time must be >= 0, got {t}.")
        return float(self._interpolator(float(t)))

    @property
    def points(self) -> Tuple[CurvePoint, ...]:
        return tuple(CurvePoint(t, r) for t, r in zip(self.times, self.rates))

    def valid_range(self) -> Tuple[float, float]:
        """Knot time range; queries outside it are extrapolated."""
        return float(self.times[0]), float(self.times[-1])

    def __repr__(self) -> str:
        return (
            f"ZeroCurve({self.currency}, {self.reference_date.date()}, n={self.times.size}, "
            f"{self.interpolation_method.value}, {self.day_count.name})"
        )


@dataclass(frozen=True)
class FlatZeroCurve(BaseCurve):
    """Same zero rate at every maturity."""
    currency: str
    reference_date: pd.Timestamp
    rate: float
    day_count: DayCountConvention = ACT_365

    def __post_init__(self):
        object.__setattr__(self, "rate", float(self.rate))
        if not np.isfinite(self.rate):
            raise ValueError(f"Flat rate must be finite, got {self.rate}.")
        if self.rate < 0:
            raise NegativeRateOrVolError(f"Flat curve rate must be >= 0, got {self.rate}.")

        object.__setattr__(self, "reference_date", to_timestamp(self.reference_date))
        object.__setattr__(self, "day_count", get_day_count_convention(self.day_count))

    def zero_rate_at(self, t: float) -> float:
        if t < 0:
            raise ValueError(f"Time must be >= 0, got {t}.")
        return self.rate

    @property
    def points(self) -> Tuple[CurvePoint, ...]:
        return (CurvePoint(0.0, self.rate),)

    def valid_range(self) -> Tuple[float, float]:
        return 0.0, float("inf")


def _split_points(points: Iterable[PointLike]) -> Tuple[np.ndarray, np.ndarray]:
    pts = [p if isinstance(p, CurvePoint) else CurvePoint(*p) for p in points]
    if not pts:
        raise EmptyPointSetError("Zero curve needs at least one point.")
    times = np.array([p.time for p in pts], dtype=float)
    rates = np.array([p.zero_rate for p in pts], dtype=float)
    return times, rates


def create_zero_curve(
    currency: str,
    reference_date,
    points: Iterable[PointLike],
    interpolation_method="linear",
    day_count="ACT/365",
) -> ZeroCurve:
    """
    Zero curve from CurvePoints or (time, rate) tuples, strictly increasing in time.

    Raises EmptyPointSetError on no points and NonIncreasingPointsError on
    unordered or repeated times.
    """
    times, rates = _split_points(points)
    return ZeroCurve(currency, reference_date, times, rates, interpolation_method, day_count)


def create_flat_curve(currency: str, reference_date, flat_rate: float, day_count="ACT/365") -> FlatZeroCurve:
    return FlatZeroCurve(currency, reference_date, flat_rate, day_count)


def curve_qc_report(curve: BaseCurve) -> pd.DataFrame:
    knots = curve.points
    times = np.array([p.time for p in knots], dtype=float)
    zeros = np.array([p.zero_rate for p in knots], dtype=float)
    dfs = np.exp(-zeros * times)

    return pd.DataFrame(
        {
            "time": times,
            "zero_cc": zeros,
            "df": dfs,
            "df_positive": dfs > 0,
            "df_monotone": np.r_[True, np.diff(dfs) <= 1e-10],
        }
    )


def curve_from_shifted_zeros(curve: BaseCurve, shift_func: Callable[[float], float]) -> ZeroCurve:
    """Build a new curve by shifting knot zeros z(t) by shift_func(t) (decimal)."""
    knots = curve.points
    times = np.array([p.time for p in knots], dtype=float)
    zeros = np.array([p.zero_rate for p in knots], dtype=float)

    shifts = np.array([shift_func(t) for t in times], dtype=float)

    return ZeroCurve(
        curve.currency,
        curve.reference_date,
        times,
        zeros + shifts,
        curve.interpolation_method,
        curve.day_count,
    )


def shocked_curve_parallel(curve: BaseCurve, shift_bp: float) -> ZeroCurve:
    """Parallel shift in continuously-compounded zero rates by shift_bp."""
    return curve_from_shifted_zeros(curve, parallel_shift_bp(shift_bp))


def parallel_shift_bp(bp: float):
    """Every zero up by bp (down for bp < 0)."""
    s = bp / 10000.0
    return lambda t: s


def _twist(short: float, long_: float, pivot: float, long: float):
    def f(t: float) -> float:
        if t <= pivot:
            return short
        if t >= long:
            return long_
        w = (t - pivot) / (long - pivot)
        return (1 - w) * short + w * long_

    return f


def steepener_shift_bp(bp: float, pivot: float = 2.0, long: float = 10.0):
    """
    Twist that steepens for bp > 0: zeros up to `pivot` fall by bp, zeros
    from `long` on rise by bp, linear in between (zero shift at the midpoint).
    """
    A = bp / 10000.0
    return _twist(-A, +A, pivot, long)


def flattener_shift_bp(bp: float, pivot: float = 2.0, long: float = 10.0):
    """Mirror of `steepener_shift_bp`: short end up by bp, long end down by bp."""
    A = bp / 10000.0
    return _twist(+A, -A, pivot, long)
