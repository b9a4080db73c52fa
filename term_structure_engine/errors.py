from __future__ import annotations


class CurveConstructionError(ValueError):
    """Base class for invalid inputs to curve/surface construction and queries."""


class InvalidDateRangeError(CurveConstructionError):
    """End date precedes start date in a year-fraction computation."""


class UnsupportedConventionError(CurveConstructionError):
    """No day-count convention is registered under the requested name."""


class InterpolationNotImplementedError(NotImplementedError):
    """Interpolation scheme is recognised but has no implementation."""


class EmptyPointSetError(CurveConstructionError):
    pass


class EmptyInstrumentSetError(CurveConstructionError):
    pass


class NonIncreasingPointsError(CurveConstructionError):
    """Curve times (or surface strike/tenor pairs) are not strictly increasing/unique."""


class NegativeRateOrVolError(CurveConstructionError):
    pass


class ImplausibleVolUnitsError(CurveConstructionError):
    """Volatility above 10.0: most likely a percentage passed as a decimal."""


class IncompleteVolGridError(CurveConstructionError):
    """Surface points do not cover every (strike, tenor) cell of the grid."""


class UnsortableInstrumentError(CurveConstructionError):
    """Two instruments share a maturity but quote different levels."""


class BootstrapNonConvergenceError(CurveConstructionError):
    """Root finding for a bootstrap knot failed to bracket or converge."""


class NonMonotoneDiscountFactorError(CurveConstructionError):
    """A bootstrapped knot's discount factor is above the previous knot's."""
