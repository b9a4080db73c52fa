import pandas as pd
import pytest

from term_structure_engine.daycount import (
    ACT_360,
    ACT_365,
    ACT_ACT,
    BUS_252,
    THIRTY_360,
    available_conventions,
    get_day_count_convention,
    yearfrac,
)
from term_structure_engine.errors import InvalidDateRangeError, UnsupportedConventionError


@pytest.fixture(scope="module")
def date_pairs():
    return [
        (pd.Timestamp("2023-01-31"), pd.Timestamp("2023-02-28")),
        (pd.Timestamp("2023-07-01"), pd.Timestamp("2024-07-01")),
        (pd.Timestamp("2024-02-29"), pd.Timestamp("2031-12-31")),
        (pd.Timestamp("2026-02-13"), pd.Timestamp("2026-02-13")),
    ]


def test_all_conventions_non_negative(date_pairs):
    for conv in available_conventions():
        for start, end in date_pairs:
            assert conv.year_fraction(start, end) >= 0.0, f"{conv.name} negative for {start} -> {end}"


def test_end_before_start_raises(date_pairs):
    for conv in available_conventions():
        for start, end in date_pairs:
            if end > start:
                with pytest.raises(InvalidDateRangeError):
                    conv.year_fraction(end, start)


def test_invalid_range_is_value_error():
    with pytest.raises(ValueError):
        yearfrac("2024-01-02", "2024-01-01", "ACT/365")


def test_same_date_is_zero():
    for conv in available_conventions():
        assert conv.year_fraction("2024-05-17", "2024-05-17") == 0.0


def test_act_act_full_years():
    assert ACT_ACT.year_fraction("2023-01-01", "2024-01-01") == pytest.approx(1.0, abs=1e-15)
    assert ACT_ACT.year_fraction("2024-01-01", "2025-01-01") == pytest.approx(1.0, abs=1e-15)


def test_act_act_same_year_uses_year_length():
    # Jan (31) + Feb (29) in a leap year
    assert ACT_ACT.year_fraction("2024-01-01", "2024-03-01") == pytest.approx(60 / 366)
    assert ACT_ACT.year_fraction("2023-01-01", "2023-03-01") == pytest.approx(59 / 365)


def test_act_act_across_years_averages_year_lengths():
    # 184 days of 2023 + 182 days of 2024, average year length 365.5
    yf = ACT_ACT.year_fraction("2023-07-01", "2024-07-01")
    assert yf == pytest.approx(366 / 365.5)


def test_thirty_360_day_adjustment():
    assert THIRTY_360.day_count("2023-01-31", "2023-02-28") == 28
    assert yearfrac("2023-01-31", "2023-02-28", "30/360") == pytest.approx(28 / 360)
    # end 31st clamps only when start day >= 30
    assert THIRTY_360.day_count("2023-01-30", "2023-03-31") == 60
    assert THIRTY_360.day_count("2023-01-15", "2023-03-31") == 76


def test_act_360_over_act_365_ratio(date_pairs):
    for start, end in date_pairs:
        if end > start:
            ratio = ACT_360.year_fraction(start, end) / ACT_365.year_fraction(start, end)
            assert ratio == pytest.approx(365 / 360, rel=1e-15)


def test_business_252_counts_weekdays_start_inclusive():
    # Monday to next Monday: five weekdays
    assert BUS_252.day_count("2024-01-01", "2024-01-08") == 5
    assert BUS_252.year_fraction("2024-01-01", "2024-01-08") == pytest.approx(5 / 252)
    # Saturday to Monday: no weekdays in [start, end)
    assert BUS_252.day_count("2024-01-06", "2024-01-08") == 0


def test_registry_lookup_is_case_and_space_insensitive():
    assert get_day_count_convention(" act / 360 ") is ACT_360
    assert get_day_count_convention("Actual/Actual") is ACT_ACT
    assert get_day_count_convention("ACT/365F") is ACT_365
    assert get_day_count_convention("bus/252") is BUS_252
    assert get_day_count_convention(THIRTY_360) is THIRTY_360


def test_registry_unknown_convention():
    with pytest.raises(UnsupportedConventionError):
        get_day_count_convention("ACT/999")
    with pytest.raises(ValueError):
        yearfrac("2024-01-01", "2024-06-01", "NL/365")


def test_available_conventions_names():
    names = {c.name for c in available_conventions()}
    assert names == {"Actual/365", "Actual/360", "Actual/Actual", "30/360", "Business/252"}
