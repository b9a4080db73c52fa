from __future__ import annotations

import numpy as np
import pandas as pd
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, List, Tuple, Union

from .daycount import to_timestamp
from .errors import (
    EmptyPointSetError,
    ImplausibleVolUnitsError,
    IncompleteVolGridError,
    NegativeRateOrVolError,
    NonIncreasingPointsError,
)
from .interpolation import InterpolationMethod, create_interpolator

# Above this a vol is almost surely a percentage passed as a decimal (12 for 0.12).
MAX_PLAUSIBLE_VOL = 10.0

# Smile grid: 10D put, 25D put, ATM, 25D call, 10D call over 1M, 3M, 6M, 1Y.
SMILE_DELTAS = (-0.10, -0.25, 0.0, 0.25, 0.10)
SMILE_TENOR_DAYS = (30, 90, 180, 365)
SMILE_ATM_STRIKE = 100.0
SMILE_STRIKE_PER_DELTA = 10.0


@dataclass(frozen=True)
class VolSurfacePoint:
    strike: float
    tenor: float
    volatility: float

    def __post_init__(self):
        for name in ("strike", "tenor", "volatility"):
            value = float(getattr(self, name))
            if not np.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}.")
            object.__setattr__(self, name, value)

        if self.strike <= 0:
            raise ValueError(f"Strike must be > 0, got {self.strike}.")
        if self.tenor <= 0:
            raise ValueError(f"Tenor must be > 0, got {self.tenor}.")
        if self.volatility < 0:
            raise NegativeRateOrVolError(
                f"Volatility must be >= 0, got {self.volatility} at K={self.strike} T={self.tenor}."
            )


@dataclass(frozen=True)
class VolSmileParameters:
    """25-delta risk reversal and butterfly, in vol units, relative to ATM."""
    risk_reversal_25d: float
    butterfly_25d: float

    def put_25d_vol(self, atm_vol: float) -> float:
        return atm_vol + self.butterfly_25d + self.risk_reversal_25d / 2.0

    def call_25d_vol(self, atm_vol: float) -> float:
        return atm_vol + self.butterfly_25d - self.risk_reversal_25d / 2.0

    def smile_adjustment(self, delta: float) -> float:
        """rr * delta + bf * delta^2, the quadratic smile used by the smile grid."""
        return self.risk_reversal_25d * delta + self.butterfly_25d * abs(delta) ** 2

    def estimate_vol_by_delta(self, atm_vol: float, delta: float) -> float:
        """
        Vol at a signed delta (negative for puts).

        Linear between ATM (|delta| = 0.5, matched within 0.01) and the 25D
        vol on the same side, flat at the 25D vol for smaller |delta|.
        Deltas deeper than ATM get atm + 2 * bf.
        """
        if abs(delta) > 1.0:
            raise ValueError(f"Delta must be in [-1, 1], got {delta}.")

        abs_delta = abs(delta)
        if abs(abs_delta - 0.5) < 0.01:
            return atm_vol
        if abs_delta > 0.5:
            return atm_vol + 2.0 * self.butterfly_25d

        wing = self.call_25d_vol(atm_vol) if delta > 0 else self.put_25d_vol(atm_vol)
        if abs_delta < 0.25:
            return wing
        weight = (0.5 - abs_delta) / 0.25
        return atm_vol * (1.0 - weight) + wing * weight


def _check_query(strike: float, tenor: float) -> None:
    if not strike > 0:
        raise ValueError(f"Strike must be > 0, got {strike}.")
    if not tenor > 0:
        raise ValueError(f"Tenor must be > 0, got {tenor}.")


class VolatilitySurface(ABC):
    """Implied volatility by (strike, tenor in years)."""

    pair: str
    reference_date: pd.Timestamp

    @abstractmethod
    def volatility(self, strike: float, tenor: float) -> float:
        ...

    def atm_volatility(self, spot: float, tenor: float) -> float:
        """ATM taken as strike = spot."""
        return self.volatility(spot, tenor)

    @abstractmethod
    def volatility_by_moneyness(self, moneyness: float, tenor: float) -> float:
        ...

    @abstractmethod
    def valid_range(self) -> Tuple[float, float, float, float]:
        """(min strike, max strike, min tenor, max tenor)."""

    def is_in_range(self, strike: float, tenor: float) -> bool:
        k_min, k_max, t_min, t_max = self.valid_range()
        return k_min <= strike <= k_max and t_min <= tenor <= t_max


@dataclass(frozen=True)
class FlatVolSurface(VolatilitySurface):
    pair: str
    reference_date: pd.Timestamp
    vol: float

    def __post_init__(self):
        object.__setattr__(self, "vol", float(self.vol))
        if not np.isfinite(self.vol):
            raise ValueError(f"Flat vol must be finite, got {self.vol}.")
        if self.vol < 0:
            raise NegativeRateOrVolError(f"Flat vol must be >= 0, got {self.vol}.")
        if self.vol > MAX_PLAUSIBLE_VOL:
            raise ImplausibleVolUnitsError(
                f"Flat vol {self.vol} > {MAX_PLAUSIBLE_VOL}: pass decimals (0.12 for 12%)."
            )
        object.__setattr__(self, "reference_date", to_timestamp(self.reference_date))

    def volatility(self, strike: float, tenor: float) -> float:
        _check_query(strike, tenor)
        return self.vol

    def volatility_by_moneyness(self, moneyness: float, tenor: float) -> float:
        _check_query(moneyness, tenor)
        return self.vol

    def valid_range(self):
        return 0.0, float("inf"), 0.0, float("inf")

    def is_in_range(self, strike: float, tenor: float) -> bool:
        return strike > 0 and tenor > 0


PointLike = Union[VolSurfacePoint, Tuple[float, float, float]]


class InterpolatedVolSurface(VolatilitySurface):
    """
    Vol surface over a full strike x tenor grid.

    A query interpolates every tenor row along strike, then the resulting
    column along tenor, with the same 1-D strategy. With LINEAR this is
    bilinear interpolation, flat beyond the grid edges.

    The tenor interpolator for a strike is built once and cached, and the
    grid is read-only after construction.
    """

    def __init__(
        self,
        pair: str,
        reference_date,
        points: Iterable[PointLike],
        interpolation_method="linear",
    ):
        pts = [p if isinstance(p, VolSurfacePoint) else VolSurfacePoint(*p) for p in points]
        if not pts:
            raise EmptyPointSetError(f"{pair}: vol surface needs at least one point.")

        cells: Dict[Tuple[float, float], float] = {}
        for p in pts:
            key = (p.strike, p.tenor)
            if key in cells:
                raise NonIncreasingPointsError(f"{pair}: duplicate vol point at K={p.strike} T={p.tenor}.")
            cells[key] = p.volatility

        strikes = np.array(sorted({p.strike for p in pts}), dtype=float)
        tenors = np.array(sorted({p.tenor for p in pts}), dtype=float)
        if len(cells) != strikes.size * tenors.size:
            missing = [(k, t) for t in tenors for k in strikes if (k, t) not in cells]
            raise IncompleteVolGridError(
                f"{pair}: {len(missing)} missing grid cells, e.g. K={missing[0][0]} T={missing[0][1]}."
            )

        vols = np.array([[cells[(k, t)] for k in strikes] for t in tenors], dtype=float)
        for arr in (strikes, tenors, vols):
            arr.setflags(write=False)

        self._pair = pair
        self._reference_date = to_timestamp(reference_date)
        self._interpolation_method = InterpolationMethod.parse(interpolation_method)
        self._strikes = strikes
        self._tenors = tenors
        self._vols = vols
        self._rows = [create_interpolator(self._interpolation_method, strikes, row) for row in vols]
        self._tenor_interpolator = lru_cache(maxsize=1024)(self._build_tenor_interpolator)

    @property
    def pair(self) -> str:
        return self._pair

    @property
    def reference_date(self) -> pd.Timestamp:
        return self._reference_date

    @property
    def interpolation_method(self) -> InterpolationMethod:
        return self._interpolation_method

    @property
    def strikes(self) -> np.ndarray:
        return self._strikes

    @property
    def tenors(self) -> np.ndarray:
        return self._tenors

    @property
    def vols(self) -> np.ndarray:
        return self._vols

    @property
    def points(self) -> List[VolSurfacePoint]:
        return [
            VolSurfacePoint(k, t, self.vols[i, j])
            for i, t in enumerate(self.tenors)
            for j, k in enumerate(self.strikes)
        ]

    def _build_tenor_interpolator(self, strike: float):
        column = np.array([row(strike) for row in self._rows], dtype=float)
        return create_interpolator(self._interpolation_method, self._tenors, column)

    def volatility(self, strike: float, tenor: float) -> float:
        _check_query(strike, tenor)
        return float(self._tenor_interpolator(float(strike))(float(tenor)))

    def volatility_by_moneyness(self, moneyness: float, tenor: float) -> float:
        """Moneyness K / K_atm with K_atm taken as the middle of the strike range."""
        _check_query(moneyness, tenor)
        atm_strike = (self.strikes[0] + self.strikes[-1]) / 2.0
        return self.volatility(moneyness * atm_strike, tenor)

    def valid_range(self):
        return float(self.strikes[0]), float(self.strikes[-1]), float(self.tenors[0]), float(self.tenors[-1])

    def __repr__(self) -> str:
        return (
            f"InterpolatedVolSurface({self.pair}, {self.strikes.size}x{self.tenors.size}, "
            f"K=[{self.strikes[0]:.2f}-{self.strikes[-1]:.2f}], T=[{self.tenors[0]:.2f}Y-{self.tenors[-1]:.2f}Y])"
        )


def create_interpolated_vol_surface(
    pair: str,
    reference_date,
    points: Iterable[PointLike],
    interpolation_method="linear",
) -> InterpolatedVolSurface:
    return InterpolatedVolSurface(pair, reference_date, points, interpolation_method)


def create_flat_vol_surface(pair: str, reference_date, flat_vol: float) -> FlatVolSurface:
    return FlatVolSurface(pair, reference_date, flat_vol)


def create_vol_surface_from_smile(
    pair: str,
    reference_date,
    atm_vol: float,
    smile: VolSmileParameters,
    interpolation_method="linear",
) -> InterpolatedVolSurface:
    """
    Surface from an ATM vol and 25D smile parameters.

    APPROXIMATION: vol(delta) = atm + rr * delta + bf * delta^2 on a fixed
    delta x tenor grid, and delta is mapped to strike linearly as
    100 + 10 * delta around a nominal ATM strike of 100. There is no
    delta-to-strike solve against a pricing model.
    """
    if atm_vol < 0:
        raise NegativeRateOrVolError(f"{pair}: ATM vol must be >= 0, got {atm_vol}.")

    points = [
        VolSurfacePoint(
            SMILE_ATM_STRIKE + SMILE_STRIKE_PER_DELTA * delta,
            days / 365.0,
            atm_vol + smile.smile_adjustment(delta),
        )
        for days in SMILE_TENOR_DAYS
        for delta in SMILE_DELTAS
    ]
    return InterpolatedVolSurface(pair, reference_date, points, interpolation_method)
