import numpy as np
import pytest

from term_structure_engine.errors import (
    EmptyPointSetError,
    InterpolationNotImplementedError,
    NonIncreasingPointsError,
)
from term_structure_engine.interpolation import (
    CubicSplineInterpolator,
    InterpolationMethod,
    LinearInterpolator,
    create_interpolator,
)


@pytest.fixture(scope="module")
def knots():
    xs = np.array([0.25, 0.5, 1.0, 2.0, 5.0, 10.0])
    ys = np.array([0.0510, 0.0505, 0.0490, 0.0460, 0.0435, 0.0440])
    return xs, ys


def test_linear_reproduces_knots(knots):
    xs, ys = knots
    interp = LinearInterpolator(xs, ys)
    for x, y in zip(xs, ys):
        assert interp(x) == pytest.approx(y, abs=1e-15)


def test_linear_midpoint_is_mean_for_equal_spacing():
    interp = LinearInterpolator([1.0, 2.0, 3.0], [0.02, 0.04, 0.03])
    assert interp(1.5) == pytest.approx(0.03)
    assert interp(2.5) == pytest.approx(0.035)


def test_linear_flat_extrapolation(knots):
    xs, ys = knots
    interp = LinearInterpolator(xs, ys)
    assert interp(0.0) == ys[0]
    assert interp(30.0) == ys[-1]


def test_spline_reproduces_knots(knots):
    xs, ys = knots
    spline = CubicSplineInterpolator(xs, ys)
    for x, y in zip(xs, ys):
        assert spline(x) == pytest.approx(y, abs=1e-14)


def test_spline_c1_continuous_at_interior_knots(knots):
    xs, ys = knots
    spline = CubicSplineInterpolator(xs, ys)
    eps = 1e-7
    for x in xs[1:-1]:
        assert spline(x - eps) == pytest.approx(spline(x + eps), abs=1e-8)
        assert spline.derivative(x - eps) == pytest.approx(spline.derivative(x + eps), abs=1e-6)


def test_spline_is_natural(knots):
    xs, ys = knots
    spline = CubicSplineInterpolator(xs, ys)
    assert spline.derivative(xs[0], order=2) == pytest.approx(0.0, abs=1e-12)
    assert spline.derivative(xs[-1], order=2) == pytest.approx(0.0, abs=1e-12)


def test_spline_extrapolation_is_not_flat(knots):
    xs, ys = knots
    spline = CubicSplineInterpolator(xs, ys)
    linear = LinearInterpolator(xs, ys)
    assert linear(15.0) == ys[-1]
    assert abs(spline(15.0) - ys[-1]) > 1e-6


def test_spline_one_and_two_knots():
    one = CubicSplineInterpolator([2.0], [0.03])
    assert one(0.5) == 0.03
    assert one(7.0) == 0.03

    two = CubicSplineInterpolator([1.0, 3.0], [0.02, 0.04])
    assert two(2.0) == pytest.approx(0.03)
    assert two(4.0) == pytest.approx(0.05)
    assert two.derivative(0.0) == pytest.approx(0.01)
    assert two.derivative(0.0, order=2) == 0.0


def test_array_queries(knots):
    xs, ys = knots
    out = LinearInterpolator(xs, ys)([0.25, 0.75, 20.0])
    assert isinstance(out, np.ndarray)
    assert out.shape == (3,)
    assert out[0] == ys[0]
    assert out[2] == ys[-1]


def test_inputs_are_copied(knots):
    xs, ys = knots
    xs_in = xs.copy()
    interp = LinearInterpolator(xs_in, ys)
    assert xs_in.flags.writeable
    assert not interp.xs.flags.writeable
    xs_in[0] = -1.0
    assert interp.xs[0] == 0.25


def test_construction_errors():
    with pytest.raises(EmptyPointSetError):
        LinearInterpolator([], [])
    with pytest.raises(NonIncreasingPointsError):
        LinearInterpolator([1.0, 1.0, 2.0], [0.01, 0.02, 0.03])
    with pytest.raises(NonIncreasingPointsError):
        CubicSplineInterpolator([2.0, 1.0], [0.01, 0.02])
    with pytest.raises(ValueError):
        LinearInterpolator([1.0, 2.0], [0.01])


def test_factory_dispatch(knots):
    xs, ys = knots
    assert isinstance(create_interpolator("linear", xs, ys), LinearInterpolator)
    assert isinstance(create_interpolator("Cubic Spline", xs, ys), CubicSplineInterpolator)
    assert isinstance(create_interpolator(InterpolationMethod.CUBIC_SPLINE, xs, ys), CubicSplineInterpolator)
    assert create_interpolator("linear", xs, ys).is_local
    assert not create_interpolator("cubic_spline", xs, ys).is_local


def test_unsupported_methods(knots):
    xs, ys = knots
    for method in ("flat", "log_linear"):
        with pytest.raises(InterpolationNotImplementedError):
            create_interpolator(method, xs, ys)
        with pytest.raises(NotImplementedError):
            create_interpolator(method, xs, ys)
    with pytest.raises(ValueError):
        create_interpolator("quadratic", xs, ys)
