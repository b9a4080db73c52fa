"""
Interpolation strategies over strictly increasing (x, y) knots.

- LINEAR: piecewise linear, flat extrapolation at the boundary values.
- CUBIC_SPLINE: natural cubic spline (second derivative zero at both end
  knots). Outside the knot range the boundary segment's cubic is evaluated,
  i.e. extrapolation is NOT flat, unlike LINEAR.
- FLAT, LOG_LINEAR: recognised, not implemented.
"""
from __future__ import annotations

import numpy as np
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Sequence, Union

from scipy.interpolate import CubicSpline

from .errors import EmptyPointSetError, InterpolationNotImplementedError, NonIncreasingPointsError

ArrayLike = Union[float, Sequence[float], np.ndarray]


class InterpolationMethod(str, Enum):
    LINEAR = "linear"
    CUBIC_SPLINE = "cubic_spline"
    FLAT = "flat"
    LOG_LINEAR = "log_linear"

    @classmethod
    def parse(cls, method) -> "InterpolationMethod":
        if isinstance(method, cls):
            return method
        key = str(method).strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            raise ValueError(
                f"Unknown interpolation method: {method}. Available: {[m.value for m in cls]}"
            ) from None


class Interpolator(ABC):
    """Base class for 1-D interpolation over ordered knots."""

    # True when moving one knot only changes the curve next to that knot.
    is_local: bool = True

    def __init__(self, xs: Sequence[float], ys: Sequence[float]):
        xs = np.array(xs, dtype=float).ravel()
        ys = np.array(ys, dtype=float).ravel()

        if xs.size == 0:
            raise EmptyPointSetError("Interpolation needs at least one point.")
        if xs.size != ys.size:
            raise ValueError(f"xs and ys must have same length ({xs.size} != {ys.size}).")
        if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
            raise ValueError("Interpolation knots must be finite.")

        steps = np.diff(xs)
        if np.any(steps <= 0):
            i = int(np.argmax(steps <= 0))
            raise NonIncreasingPointsError(
                f"Knots must be strictly increasing: x[{i}]={xs[i]} x[{i + 1}]={xs[i + 1]}"
            )

        xs.setflags(write=False)
        ys.setflags(write=False)
        self.xs = xs
        self.ys = ys

    @abstractmethod
    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        ...

    def interpolate(self, x: float) -> float:
        return float(self._evaluate(np.asarray([x], dtype=float))[0])

    def interpolate_many(self, xs: Sequence[float]) -> np.ndarray:
        return self._evaluate(np.asarray(xs, dtype=float))

    def __call__(self, x: ArrayLike):
        if np.ndim(x) == 0:
            return self.interpolate(float(x))
        return self.interpolate_many(x)

    def __len__(self) -> int:
        return int(self.xs.size)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(n={len(self)}, range=[{self.xs[0]:.4f}, {self.xs[-1]:.4f}])"


class LinearInterpolator(Interpolator):
    """Piecewise linear; flat beyond the first and last knot."""

    def _evaluate(self, x):
        return np.interp(x, self.xs, self.ys)


class CubicSplineInterpolator(Interpolator):
    """
    Natural cubic spline.

    Second derivatives at the knots are solved once at construction
    (tridiagonal system, via scipy); each query is a closed-form cubic.
    One knot gives a constant, two knots a straight line (the natural spline
    through two points), both evaluated directly.
    """

    is_local = False

    def __init__(self, xs: Sequence[float], ys: Sequence[float]):
        super().__init__(xs, ys)
        if len(self) >= 3:
            self._spline = CubicSpline(self.xs, self.ys, bc_type="natural", extrapolate=True)
        else:
            self._spline = None

    def _slope(self) -> float:
        if len(self) == 1:
            return 0.0
        return (self.ys[1] - self.ys[0]) / (self.xs[1] - self.xs[0])

    def _evaluate(self, x):
        if self._spline is None:
            return self.ys[0] + self._slope() * (np.asarray(x, dtype=float) - self.xs[0])
        return np.asarray(self._spline(x), dtype=float)

    def derivative(self, x: ArrayLike, order: int = 1):
        if self._spline is not None:
            out = np.asarray(self._spline(x, order), dtype=float)
        elif order == 1:
            out = np.full(np.shape(x), self._slope(), dtype=float)
        else:
            out = np.zeros(np.shape(x), dtype=float)
        return float(out) if np.ndim(x) == 0 else out


def _not_implemented(method: InterpolationMethod) -> Callable[..., Interpolator]:
    def factory(xs, ys):
        raise InterpolationNotImplementedError(f"{method.value} interpolation is not implemented.")

    return factory


INTERPOLATORS: Dict[InterpolationMethod, Callable[..., Interpolator]] = {
    InterpolationMethod.LINEAR: LinearInterpolator,
    InterpolationMethod.CUBIC_SPLINE: CubicSplineInterpolator,
    InterpolationMethod.FLAT: _not_implemented(InterpolationMethod.FLAT),
    InterpolationMethod.LOG_LINEAR: _not_implemented(InterpolationMethod.LOG_LINEAR),
}


def create_interpolator(method, xs: Sequence[float], ys: Sequence[float]) -> Interpolator:
    """Create an interpolator by method name or InterpolationMethod."""
    return INTERPOLATORS[InterpolationMethod.parse(method)](xs, ys)
