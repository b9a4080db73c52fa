from __future__ import annotations

import logging
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from scipy.optimize import brentq

from .curves import ZeroCurve
from .daycount import DayCountConvention, get_day_count_convention, to_timestamp
from .errors import (
    BootstrapNonConvergenceError,
    EmptyInstrumentSetError,
    InvalidDateRangeError,
    NonMonotoneDiscountFactorError,
    UnsortableInstrumentError,
)
from .instruments import Deposit, MarketInstrument, Swap
from .interpolation import InterpolationMethod, create_interpolator
from .utils import tenor_to_years

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BootstrapConfig:
    """
    Numerical settings for `bootstrap_curve`.

    tolerance: brentq xtol on each knot rate.
    quote_tolerance: largest accepted |implied - market| per instrument.
    max_iterations: brentq iteration cap per solve.
    bracket_width: initial half-width (in rate) of the bracket around the seed.
    max_bracket_expansions: times the bracket is widened (x1.6) before giving up.
    max_passes: full re-solve passes for non-local interpolation.
    enforce_monotone_df: reject knots whose discount factor rises with maturity.
    """
    tolerance: float = 1e-12
    quote_tolerance: float = 1e-9
    max_iterations: int = 100
    bracket_width: float = 0.05
    max_bracket_expansions: int = 12
    max_passes: int = 25
    enforce_monotone_df: bool = True

    def __post_init__(self):
        for name in ("tolerance", "quote_tolerance", "bracket_width"):
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}.")
        for name in ("max_iterations", "max_bracket_expansions", "max_passes"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}.")


def _order_instruments(
    instruments: Iterable[MarketInstrument],
    reference_date: pd.Timestamp,
    day_count: DayCountConvention,
) -> List[Tuple[float, MarketInstrument]]:
    """Sort by maturity time; drop exact duplicates, reject conflicting quotes."""
    instruments = list(instruments)
    if not instruments:
        raise EmptyInstrumentSetError("Bootstrapping needs at least one instrument.")

    by_time: Dict[float, MarketInstrument] = {}
    for inst in instruments:
        if inst.start_date < reference_date:
            raise InvalidDateRangeError(
                f"{inst.label}: starts before reference date {reference_date.date()}."
            )
        t = inst.maturity_time(reference_date, day_count)
        if t <= 0:
            raise ValueError(f"{inst.label}: must mature after reference date {reference_date.date()}.")

        if t in by_time:
            kept = by_time[t]
            if kept == inst:
                logger.warning("Dropping duplicate instrument: %s", inst.label)
                continue
            raise UnsortableInstrumentError(
                f"Instruments share maturity t={t:.6f} with conflicting quotes: {kept.label} vs {inst.label}"
            )
        by_time[t] = inst

    return sorted(by_time.items(), key=lambda kv: kv[0])


def _find_bracket(
    f: Callable[[float], float],
    center: float,
    width: float,
    max_expansions: int,
    label: str,
    expansion: float = 1.6,
) -> Tuple[float, float]:
    a, b = center - width, center + width
    fa, fb = f(a), f(b)
    for _ in range(max_expansions):
        if fa * fb <= 0:
            return a, b
        width *= expansion
        a, b = center - width, center + width
        fa, fb = f(a), f(b)
    if fa * fb <= 0:
        return a, b
    raise BootstrapNonConvergenceError(
        f"Root not bracketed for {label} in [{a:.4f}, {b:.4f}] after {max_expansions} expansions: "
        f"inconsistent market data."
    )


def _solve_knot(
    f: Callable[[float], float],
    guess: float,
    config: BootstrapConfig,
    label: str,
) -> float:
    """
    Zero rate r with f(r) = 0.

    One secant step from the seed centres the bracket; brentq refines it.
    """
    h = 1e-4
    f0 = f(guess)
    slope = (f(guess + h) - f0) / h
    center = guess - f0 / slope if slope != 0 and np.isfinite(slope) else guess
    if not np.isfinite(center):
        center = guess

    a, b = _find_bracket(f, center, config.bracket_width, config.max_bracket_expansions, label)

    root, res = brentq(
        f, a, b, xtol=config.tolerance, maxiter=config.max_iterations, full_output=True, disp=False
    )
    if not res.converged:
        raise BootstrapNonConvergenceError(
            f"Root finding did not converge for {label} in {config.max_iterations} iterations ({res.flag})."
        )

    residual = f(root)
    if abs(residual) > config.quote_tolerance:
        raise BootstrapNonConvergenceError(
            f"Residual {residual:.3e} above quote tolerance {config.quote_tolerance:.1e} for {label}."
        )

    logger.debug("Solved %s: r=%.12f residual=%.3e iterations=%d", label, root, residual, res.iterations)
    return float(root)


def _check_monotone_df(times: np.ndarray, rates: np.ndarray, k: int, label: str, tol: float = 1e-10) -> None:
    """Knot k's discount factor must not exceed knot k-1's."""
    if k == 0:
        return
    df_prev = np.exp(-rates[k - 1] * times[k - 1])
    df_k = np.exp(-rates[k] * times[k])
    if df_k - df_prev > tol:
        raise NonMonotoneDiscountFactorError(
            f"Non-monotone DF detected at {label}: DF(t={times[k]:.6f})={df_k:.8f} "
            f"above DF(t={times[k - 1]:.6f})={df_prev:.8f}."
        )


def bootstrap_curve(
    currency: str,
    reference_date,
    instruments: Iterable[MarketInstrument],
    interpolation_method="linear",
    day_count="ACT/365",
    config: Optional[BootstrapConfig] = None,
) -> ZeroCurve:
    """
    Bootstrap a zero curve that reprices every instrument.

    Instruments are solved in maturity order, one zero-rate knot each, with
    earlier knots held fixed; cash flows between knots are discounted off the
    trial curve's interpolation.

    Interpolation with non-local knots (cubic spline) lets later knots move
    the curve under earlier maturities, so the solve is repeated over the
    full knot set until every instrument reprices, capped at
    `config.max_passes` passes.

    Returns
    -------
    ZeroCurve
    """
    config = config or BootstrapConfig()
    reference_date = to_timestamp(reference_date)
    method = InterpolationMethod.parse(interpolation_method)
    day_count = get_day_count_convention(day_count)
    is_local = create_interpolator(method, [0.0], [0.0]).is_local

    ordered = _order_instruments(instruments, reference_date, day_count)
    times = np.array([t for t, _ in ordered], dtype=float)
    insts = [inst for _, inst in ordered]
    rates = np.zeros(times.size, dtype=float)

    def build(n_knots: int, k: Optional[int] = None, r: float = 0.0) -> ZeroCurve:
        rr = rates[:n_knots].copy()
        if k is not None:
            rr[k] = r
        return ZeroCurve(currency, reference_date, times[:n_knots], rr, method, day_count)

    def solve(k: int, n_knots: int, guess: float) -> float:
        inst = insts[k]
        return _solve_knot(lambda r: inst.pricing_error(build(n_knots, k, r)), guess, config, inst.label)

    # STEP A: sequential pass
    for i, inst in enumerate(insts):
        rates[i] = solve(i, i + 1, inst.rate_guess())
        if config.enforce_monotone_df:
            _check_monotone_df(times, rates, i, inst.label)
        logger.debug("Knot %d t=%.6f r=%.10f (%s)", i, times[i], rates[i], inst.label)

    # STEP B: re-solve passes for non-local interpolation
    if not is_local and times.size > 1:
        n = times.size
        for p in range(1, config.max_passes + 1):
            before = rates.copy()
            for i in range(n):
                rates[i] = solve(i, n, rates[i])

            max_change = float(np.max(np.abs(rates - before)))
            curve = build(n)
            max_error = max(abs(inst.pricing_error(curve)) for inst in insts)
            logger.debug("Pass %d: max knot change=%.3e max pricing error=%.3e", p, max_change, max_error)

            if max_change <= config.tolerance or max_error <= config.quote_tolerance:
                break
        else:
            raise BootstrapNonConvergenceError(
                f"{method.value} bootstrap did not settle in {config.max_passes} passes "
                f"(max knot change {max_change:.3e}, max pricing error {max_error:.3e})."
            )

    if config.enforce_monotone_df and not is_local:
        for i, inst in enumerate(insts):
            _check_monotone_df(times, rates, i, inst.label)

    curve = build(times.size)

    for inst in insts:
        err = inst.pricing_error(curve)
        if abs(err) > config.quote_tolerance:
            raise BootstrapNonConvergenceError(
                f"{inst.label} reprices with error {err:.3e} above quote tolerance {config.quote_tolerance:.1e}."
            )

    logger.info(
        "Bootstrapped %s curve %s: %d knots, %s interpolation, last t=%.4f",
        currency,
        reference_date.date(),
        times.size,
        method.value,
        times[-1],
    )
    return curve


def build_standard_curve(
    currency: str,
    reference_date,
    quotes: Dict[str, float],
    interpolation_method="linear",
    day_count="ACT/365",
    config: Optional[BootstrapConfig] = None,
) -> ZeroCurve:
    """
    Curve from tenor -> rate quotes ({"3M": 0.05, "2Y": 0.045, ...}):
    deposits up to and including 1Y, par swaps beyond.
    """
    instruments: List[MarketInstrument] = []
    for tenor, rate in sorted(quotes.items(), key=lambda kv: tenor_to_years(kv[0])):
        if tenor_to_years(tenor) <= 1.0:
            instruments.append(Deposit.from_tenor(reference_date, tenor, rate))
        else:
            instruments.append(Swap.from_tenor(reference_date, tenor, rate))

    return bootstrap_curve(currency, reference_date, instruments, interpolation_method, day_count, config)


def repricing_report(curve: ZeroCurve, instruments: Iterable[MarketInstrument]) -> pd.DataFrame:
    rows = []
    for inst in instruments:
        model = inst.implied_quote(curve)
        rows.append(
            {
                "type": inst.instrument_type.value,
                "maturity": inst.maturity_date,
                "market": inst.quote,
                "model": model,
                "error": model - inst.quote,
            }
        )
    return pd.DataFrame(rows)
