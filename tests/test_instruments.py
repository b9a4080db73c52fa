import numpy as np
import pandas as pd
import pytest

from term_structure_engine.curves import create_flat_curve
from term_structure_engine.daycount import ACT_360, THIRTY_360, yearfrac
from term_structure_engine.instruments import (
    Deposit,
    InstrumentType,
    RateFuture,
    Swap,
    instruments_from_frame,
)


@pytest.fixture(scope="module")
def val_date():
    return pd.Timestamp("2026-02-13")


@pytest.fixture(scope="module")
def flat(val_date):
    return create_flat_curve("USD", val_date, 0.04)


@pytest.fixture(scope="module")
def market_df():
    market = pd.DataFrame(
        [
            {"type": "bill", "maturity": pd.Timestamp("2026-02-20"), "quote": 0.0525, "day_count": "ACT/360"},
            {"type": "bill", "maturity": pd.Timestamp("2026-05-15"), "quote": 0.0515, "day_count": "ACT/360"},
            {"type": "future", "start": pd.Timestamp("2026-05-15"), "maturity": pd.Timestamp("2026-08-14"), "quote": 95.05},
            {"type": "note", "maturity": pd.Timestamp("2028-02-15"), "quote": 0.0450, "coupon_freq": 2, "day_count": "30/360"},
            {"type": "swap", "maturity": pd.Timestamp("2031-02-15"), "quote": 0.0430, "coupon_freq": 1},
        ]
    )
    return market


def test_deposit_implied_rate_on_flat_curve(flat, val_date):
    mat = pd.Timestamp("2026-08-13")
    dep = Deposit(val_date, mat, 0.04)
    t = yearfrac(val_date, mat, "ACT/365")
    tau = yearfrac(val_date, mat, "ACT/360")
    assert dep.day_count is ACT_360
    assert dep.implied_quote(flat) == pytest.approx((np.exp(0.04 * t) - 1.0) / tau)
    assert dep.pricing_error(flat) == pytest.approx(dep.implied_quote(flat) - 0.04)


def test_future_quote_is_price(flat, val_date):
    start, end = pd.Timestamp("2026-05-13"), pd.Timestamp("2026-08-13")
    fut = RateFuture(start, end, 96.0)
    assert fut.forward_rate == pytest.approx(0.04)
    fwd = (flat.discount_factor(start) / flat.discount_factor(end) - 1.0) / yearfrac(start, end, "ACT/360")
    assert fut.implied_quote(flat) == pytest.approx(100.0 * (1.0 - fwd))


def test_swap_par_rate_on_flat_curve(flat, val_date):
    swap = Swap.from_tenor(val_date, "2Y", 0.04)
    assert swap.day_count is THIRTY_360
    assert swap.freq == 2
    assert len(swap.periods) == 4

    par = swap.implied_quote(flat)
    annuity = swap.annuity(flat)
    df_t = flat.discount_factor(swap.maturity_date)
    # par leg: fixed coupons plus principal reprice the float leg
    assert par * annuity + df_t == pytest.approx(1.0)
    # continuous 4% is a bit above 4% semiannual
    assert 0.040 < par < 0.0406


def test_swap_schedule_has_no_short_stub(val_date):
    swap = Swap.from_tenor(val_date, "2Y", 0.04)
    assert swap.maturity_date == pd.Timestamp("2028-02-14")
    assert swap.roll_date == pd.Timestamp("2028-02-13")
    assert swap.periods[0] == (val_date, pd.Timestamp("2026-08-13"))
    assert swap.periods[1][1] == pd.Timestamp("2027-02-15")
    assert all(b.dayofweek < 5 for _, b in swap.periods)
    assert all((b - a).days > 150 for a, b in swap.periods)
    with pytest.raises(ValueError):
        Swap(val_date, "2028-02-14", 0.04, convention="nearest")


def test_from_tenor_dates(val_date):
    dep = Deposit.from_tenor(val_date, "3M", 0.05)
    assert dep.start_date == val_date
    assert dep.maturity_date == pd.Timestamp("2026-05-13")

    fut = RateFuture.from_tenor(val_date, "3M", 95.0, forward_start="3M")
    assert fut.start_date == pd.Timestamp("2026-05-13")
    assert fut.maturity_date == pd.Timestamp("2026-08-13")


def test_maturity_time(val_date):
    dep = Deposit(val_date, "2027-02-13", 0.05)
    assert dep.maturity_time(val_date) == pytest.approx(365 / 365)
    assert dep.maturity_time(val_date, "ACT/360") == pytest.approx(365 / 360)


def test_rate_guess_is_continuous_equivalent(val_date):
    dep = Deposit(val_date, "2027-02-13", 0.05)
    tau = 365 / 360
    assert dep.rate_guess() == pytest.approx(np.log(1 + 0.05 * tau) / tau)
    assert RateFuture(val_date, "2026-05-13", 97.5).rate_guess() == pytest.approx(0.025)
    assert Swap(val_date, "2028-02-13", 0.045).rate_guess() == 0.045


def test_instrument_validation(val_date):
    with pytest.raises(ValueError):
        Deposit(val_date, val_date, 0.05)
    with pytest.raises(ValueError):
        Swap(val_date, "2025-02-13", 0.04)
    with pytest.raises(ValueError):
        Deposit(val_date, "2026-05-13", float("nan"))
    with pytest.raises(NotImplementedError):
        Swap(val_date, "2028-02-13", 0.04, freq=3)


def test_instruments_are_immutable(val_date):
    dep = Deposit(val_date, "2026-05-13", 0.05)
    with pytest.raises(AttributeError):
        dep.quote = 0.06


def test_instruments_from_frame(market_df, val_date):
    insts = instruments_from_frame(market_df, val_date)
    kinds = [i.instrument_type for i in insts]
    assert kinds == [
        InstrumentType.DEPOSIT,
        InstrumentType.DEPOSIT,
        InstrumentType.FUTURE,
        InstrumentType.SWAP,
        InstrumentType.SWAP,
    ]
    assert all(i.start_date == val_date for i in insts if not isinstance(i, RateFuture))
    assert insts[2].start_date == pd.Timestamp("2026-05-15")
    assert insts[3].freq == 2 and insts[3].day_count is THIRTY_360
    assert insts[4].freq == 1
    assert insts[0].day_count is ACT_360


def test_instruments_from_frame_errors(val_date):
    with pytest.raises(ValueError):
        instruments_from_frame(pd.DataFrame([{"type": "deposit", "quote": 0.05}]), val_date)
    bad = pd.DataFrame([{"type": "cap", "maturity": pd.Timestamp("2027-01-01"), "quote": 0.05}])
    with pytest.raises(ValueError):
        instruments_from_frame(bad, val_date)
