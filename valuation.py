from __future__ import annotations

import logging
from datetime import date
from typing import Mapping, Sequence

from portfolio_types import AssetValidation, PriceRecord, RebalancePolicy, ValuePoint

logger = logging.getLogger(__name__)


# ----------------------------
# Rebalancing schedule
# ----------------------------

def should_rebalance(current: date, last_rebalance: date, policy: RebalancePolicy) -> bool:
    """True when current falls in a later period than last_rebalance."""
    if policy == RebalancePolicy.QUARTERLY:
        return (current.year, (current.month - 1) // 3) > (
            last_rebalance.year, (last_rebalance.month - 1) // 3)
    if policy == RebalancePolicy.ANNUALLY:
        return current.year > last_rebalance.year
    return False


# ----------------------------
# Units and valuation
# ----------------------------

def calculate_units(
    record: PriceRecord,
    weights: Mapping[str, float],
    capital: float,
) -> dict[str, float]:
    """Split capital by weight/100 into units at the record's prices.

    Tickers without a positive price get 0 units; their share of capital
    is not handed to the other tickers.
    """
    units: dict[str, float] = {}
    for ticker, weight in weights.items():
        price = record.price(ticker)
        if price > 0:
            units[ticker] = capital * (weight / 100.0) / price
        else:
            units[ticker] = 0.0
    return units


def calculate_value(record: PriceRecord, units: Mapping[str, float]) -> float:
    total = 0.0
    for ticker, qty in units.items():
        total += qty * record.price(ticker)
    return total


def _rebalance_indices(prices: Sequence[PriceRecord], policy: RebalancePolicy) -> list[int]:
    """Positions of the records on which units are re-split."""
    indices: list[int] = []
    if not prices:
        return indices
    last = prices[0].date
    for i in range(1, len(prices)):
        if should_rebalance(prices[i].date, last, policy):
            indices.append(i)
            last = prices[i].date
    return indices


def compute_value_series(
    prices: Sequence[PriceRecord],
    weights: Mapping[str, float],
    initial_investment: float,
    policy: RebalancePolicy = RebalancePolicy.NONE,
) -> list[ValuePoint]:
    """Daily mark-to-market value of a weighted portfolio.

    Units are bought on the first record and carried forward. When the
    policy triggers (never on the first record), the portfolio is valued
    at that day's prices with the old units and re-split by weight.
    """
    if not prices:
        return []

    policy = RebalancePolicy(policy)
    triggers = set(_rebalance_indices(prices, policy))
    units = calculate_units(prices[0], weights, initial_investment)

    out: list[ValuePoint] = []
    for i, record in enumerate(prices):
        if i in triggers:
            current_value = calculate_value(record, units)
            units = calculate_units(record, weights, current_value)
        out.append(ValuePoint(date=record.date, value=calculate_value(record, units)))

    logger.debug(
        "Valued %d days (%s), rebalanced %d times",
        len(out), policy.value, len(triggers),
    )
    return out


def rebalance_dates(prices: Sequence[PriceRecord], policy: RebalancePolicy) -> list[date]:
    """Dates on which compute_value_series re-splits units."""
    return [prices[i].date for i in _rebalance_indices(prices, RebalancePolicy(policy))]


# ----------------------------
# Asset availability
# ----------------------------

def validate_assets_for_date_range(
    prices: Sequence[PriceRecord],
    weights: Mapping[str, float],
) -> AssetValidation:
    """Flag weighted tickers with no market on the first date.

    Also finds the first date on which every weighted ticker has a
    positive price. Advisory only: nothing is modified.
    """
    tickers = list(weights)
    if not prices:
        return AssetValidation(
            valid=False,
            invalid_assets=tuple(tickers),
            valid_assets=(),
            earliest_valid_date=None,
        )

    first = prices[0]
    invalid = tuple(t for t in tickers if first.price(t) <= 0)
    valid = tuple(t for t in tickers if first.price(t) > 0)

    earliest = None
    for record in prices:
        if all(record.price(t) > 0 for t in tickers):
            earliest = record.date
            break

    return AssetValidation(
        valid=not invalid,
        invalid_assets=invalid,
        valid_assets=valid,
        earliest_valid_date=earliest,
    )
