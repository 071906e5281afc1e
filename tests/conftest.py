from datetime import date, timedelta

import matplotlib

matplotlib.use("Agg")

import pytest

from portfolio_types import PriceRecord, ValuePoint


@pytest.fixture
def make_records():
    def _make(start: date, rows: list[dict]) -> list[PriceRecord]:
        return [PriceRecord(date=start + timedelta(days=i), prices=row) for i, row in enumerate(rows)]
    return _make


@pytest.fixture
def make_values():
    def _make(start: date, values: list[float]) -> list[ValuePoint]:
        return [ValuePoint(date=start + timedelta(days=i), value=v) for i, v in enumerate(values)]
    return _make


@pytest.fixture
def three_day_prices(make_records):
    return make_records(date(2024, 1, 1), [{"X": 100.0}, {"X": 110.0}, {"X": 121.0}])
