from datetime import date
from decimal import Decimal

import numpy as np
import pytest

from portfolio_types import PriceRecord, RebalancePolicy
from valuation import (
    calculate_units,
    compute_value_series,
    rebalance_dates,
    should_rebalance,
    validate_assets_for_date_range,
)


def test_price_record_treats_unusable_prices_as_zero():
    rec = PriceRecord(
        date(2024, 1, 1),
        {"A": 10.0, "B": 0, "C": None, "D": float("nan"), "E": -3.0, "F": "12", "G": True},
    )
    assert rec.price("A") == 10.0
    for ticker in ("B", "C", "D", "E", "F", "G", "MISSING"):
        assert rec.price(ticker) == 0.0


@pytest.mark.parametrize(
    "first, second",
    [
        (np.int64(100), np.int64(110)),
        (np.float32(100), np.float32(110)),
        (Decimal("100"), Decimal("110")),
    ],
)
def test_numeric_price_types_are_valued(make_records, first, second):
    records = make_records(date(2024, 1, 1), [{"X": first}, {"X": second}])
    assert records[0].price("X") == 100.0
    values = compute_value_series(records, {"X": 100}, 1000, RebalancePolicy.NONE)
    assert [v.value for v in values] == pytest.approx([1000, 1100])


def test_empty_prices_give_empty_series():
    assert compute_value_series([], {"X": 100}, 1000, RebalancePolicy.NONE) == []


def test_reference_example(three_day_prices):
    values = compute_value_series(three_day_prices, {"X": 100}, 1000, RebalancePolicy.NONE)
    assert [v.value for v in values] == pytest.approx([1000, 1100, 1210])
    assert [v.date for v in values] == [r.date for r in three_day_prices]


def test_same_length_and_dates_as_input(make_records):
    records = make_records(date(2024, 1, 1), [{"A": 1.0 + i, "B": 5.0} for i in range(40)])
    values = compute_value_series(records, {"A": 60, "B": 40}, 5000, RebalancePolicy.QUARTERLY)
    assert len(values) == len(records)
    assert [v.date for v in values] == [r.date for r in records]


def test_day_zero_equals_initial_investment(make_records):
    records = make_records(date(2024, 1, 1), [{"A": 37.5, "B": 0.013, "C": 2100.0}])
    values = compute_value_series(records, {"A": 20, "B": 30, "C": 50}, 12345.0)
    assert values[0].value == pytest.approx(12345.0)


def test_increasing_single_asset_tracks_price_ratio(make_records):
    prices = [50.0, 51.0, 53.5, 60.0, 61.2, 75.0]
    records = make_records(date(2023, 6, 1), [{"X": p} for p in prices])
    values = compute_value_series(records, {"X": 100}, 2000, RebalancePolicy.NONE)
    assert [v.value for v in values] == pytest.approx([2000 * p / prices[0] for p in prices])
    assert all(b.value > a.value for a, b in zip(values, values[1:]))


@pytest.mark.parametrize("policy", [RebalancePolicy.QUARTERLY, RebalancePolicy.ANNUALLY])
def test_single_asset_rebalancing_is_noop(make_records, policy):
    records = make_records(date(2022, 11, 1), [{"X": 100.0 + (i % 17) * 3.0} for i in range(500)])
    held = compute_value_series(records, {"X": 100}, 1000, RebalancePolicy.NONE)
    rebalanced = compute_value_series(records, {"X": 100}, 1000, policy)
    assert [v.value for v in rebalanced] == pytest.approx([v.value for v in held])


def test_weights_are_not_normalised(make_records):
    records = make_records(date(2024, 1, 1), [{"X": 10.0}, {"X": 20.0}])
    values = compute_value_series(records, {"X": 50}, 1000)
    assert [v.value for v in values] == pytest.approx([500, 1000])


def test_ticker_missing_from_record_counts_as_zero(make_records):
    records = make_records(date(2024, 1, 1), [{"A": 10.0, "B": 10.0}, {"A": 10.0}])
    values = compute_value_series(records, {"A": 50, "B": 50}, 1000)
    assert [v.value for v in values] == pytest.approx([1000, 500])


def test_unlisted_asset_gets_zero_units_without_rebalancing(make_records):
    rows = [
        {"A": 100.0, "B": 0.0},
        {"A": 100.0, "B": 0.0},
        {"A": 110.0, "B": 20.0},
        {"A": 120.0, "B": 40.0},
    ]
    records = make_records(date(2024, 1, 1), rows)
    values = compute_value_series(records, {"A": 50, "B": 50}, 1000, RebalancePolicy.NONE)
    # half the capital never gets invested
    assert [v.value for v in values] == pytest.approx([500, 500, 550, 600])


def test_quarterly_rebalance_picks_up_newly_listed_asset(make_records):
    rows = [
        {"A": 100.0, "B": 0.0},   # 2024-03-30
        {"A": 100.0, "B": 0.0},   # 2024-03-31
        {"A": 100.0, "B": 10.0},  # 2024-04-01 -> new quarter
        {"A": 100.0, "B": 20.0},  # 2024-04-02
    ]
    records = make_records(date(2024, 3, 30), rows)
    values = compute_value_series(records, {"A": 50, "B": 50}, 1000, RebalancePolicy.QUARTERLY)
    assert [v.value for v in values] == pytest.approx([500, 500, 500, 750])


def test_quarterly_rebalance_resets_drifted_weights(make_records):
    rows = [
        {"A": 100.0, "B": 100.0},  # 2024-03-30
        {"A": 200.0, "B": 100.0},  # 2024-03-31
        {"A": 200.0, "B": 100.0},  # 2024-04-01 rebalance at 1500
        {"A": 100.0, "B": 100.0},  # 2024-04-02
    ]
    records = make_records(date(2024, 3, 30), rows)
    held = compute_value_series(records, {"A": 50, "B": 50}, 1000, RebalancePolicy.NONE)
    rebalanced = compute_value_series(records, {"A": 50, "B": 50}, 1000, RebalancePolicy.QUARTERLY)
    assert [v.value for v in held] == pytest.approx([1000, 1500, 1500, 1000])
    assert [v.value for v in rebalanced] == pytest.approx([1000, 1500, 1500, 1125])


def test_annual_rebalance_waits_for_new_year(make_records):
    rows = [{"A": 100.0, "B": 100.0}] * 3 + [{"A": 200.0, "B": 100.0}] + [{"A": 100.0, "B": 100.0}]
    # 2024-12-29 .. 2025-01-02
    records = make_records(date(2024, 12, 29), rows)
    values = compute_value_series(records, {"A": 50, "B": 50}, 1000, RebalancePolicy.ANNUALLY)
    # 2025-01-01 re-splits 1500 into 3.75 A + 7.5 B
    assert [v.value for v in values] == pytest.approx([1000, 1000, 1000, 1500, 1125])
    assert rebalance_dates(records, RebalancePolicy.ANNUALLY) == [date(2025, 1, 1)]


def test_rebalance_dates_one_per_quarter(make_records):
    # 2024-03-30 .. 2024-07-02
    records = make_records(date(2024, 3, 30), [{"A": 1.0}] * 95)
    assert rebalance_dates(records, "quarterly") == [date(2024, 4, 1), date(2024, 7, 1)]
    assert rebalance_dates(records, RebalancePolicy.NONE) == []
    assert rebalance_dates([], RebalancePolicy.QUARTERLY) == []


def test_calculate_units_keeps_unallocated_capital_out():
    rec = PriceRecord(date(2024, 1, 1), {"A": 50.0, "B": 0.0})
    assert calculate_units(rec, {"A": 40, "B": 60}, 1000) == {"A": 8.0, "B": 0.0}


@pytest.mark.parametrize(
    "current, last, policy, expected",
    [
        (date(2024, 3, 31), date(2024, 1, 1), RebalancePolicy.QUARTERLY, False),
        (date(2024, 4, 1), date(2024, 1, 1), RebalancePolicy.QUARTERLY, True),
        (date(2025, 1, 2), date(2024, 12, 1), RebalancePolicy.QUARTERLY, True),
        (date(2024, 2, 1), date(2023, 12, 31), RebalancePolicy.QUARTERLY, True),
        (date(2024, 12, 31), date(2024, 1, 1), RebalancePolicy.ANNUALLY, False),
        (date(2025, 1, 1), date(2024, 12, 31), RebalancePolicy.ANNUALLY, True),
        (date(2030, 1, 1), date(2024, 1, 1), RebalancePolicy.NONE, False),
    ],
)
def test_should_rebalance(current, last, policy, expected):
    assert should_rebalance(current, last, policy) is expected


def test_policy_accepts_plain_strings(three_day_prices):
    values = compute_value_series(three_day_prices, {"X": 100}, 1000, "quarterly")
    assert len(values) == 3


def test_validate_assets_flags_unlisted_and_finds_earliest_date(make_records):
    rows = [
        {"A": 10.0, "B": 0.0},
        {"A": 11.0, "B": 0.0},
        {"A": 12.0, "B": 3.0},
    ]
    records = make_records(date(2024, 1, 1), rows)
    result = validate_assets_for_date_range(records, {"A": 50, "B": 50})
    assert result.valid is False
    assert result.invalid_assets == ("B",)
    assert result.valid_assets == ("A",)
    assert result.earliest_valid_date == date(2024, 1, 3)


def test_validate_assets_all_present(three_day_prices):
    result = validate_assets_for_date_range(three_day_prices, {"X": 100})
    assert result.valid is True
    assert result.invalid_assets == ()
    assert result.earliest_valid_date == date(2024, 1, 1)


def test_validate_assets_never_all_listed(make_records):
    records = make_records(date(2024, 1, 1), [{"A": 1.0, "B": 0.0}, {"A": 0.0, "B": 2.0}])
    result = validate_assets_for_date_range(records, {"A": 50, "B": 50})
    assert result.earliest_valid_date is None


def test_validate_assets_empty_prices():
    result = validate_assets_for_date_range([], {"A": 50, "B": 50})
    assert result.valid is False
    assert result.invalid_assets == ("A", "B")
    assert result.valid_assets == ()
    assert result.earliest_valid_date is None
