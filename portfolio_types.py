from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Mapping


# ----------------------------
# Prices and values
# ----------------------------

@dataclass(frozen=True)
class PriceRecord:
    """One aligned trading day: date plus ticker -> price.

    A price of 0, a missing key or a non-numeric value all mean the asset
    has no market on that date.
    """
    date: date
    prices: Mapping[str, float] = field(default_factory=dict)

    def price(self, ticker: str) -> float:
        """Usable positive price for ticker, else 0.0."""
        px = self.prices.get(ticker)
        if px is None or isinstance(px, (bool, str, bytes)):
            return 0.0
        try:
            px = float(px)
        except (TypeError, ValueError):
            return 0.0
        if not math.isfinite(px) or px <= 0:
            return 0.0
        return px


@dataclass(frozen=True)
class ValuePoint:
    date: date
    value: float


class RebalancePolicy(str, Enum):
    NONE = "none"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"

    @property
    def label(self) -> str:
        return {
            RebalancePolicy.NONE: "No rebalancing",
            RebalancePolicy.QUARTERLY: "Quarterly",
            RebalancePolicy.ANNUALLY: "Annually",
        }[self]


# ----------------------------
# Analytics results
# ----------------------------

@dataclass(frozen=True)
class MonthlyPerformance:
    month: str  # YYYY-MM
    return_: float
    start_value: float
    end_value: float


@dataclass(frozen=True)
class MonthlyStats:
    average_return: float
    up_months: int
    down_months: int
    best_month: MonthlyPerformance
    worst_month: MonthlyPerformance
    monthly_data: tuple[MonthlyPerformance, ...]


@dataclass(frozen=True)
class Metrics:
    initial_investment: float
    final_balance: float
    total_return: float
    cagr: float
    volatility: float
    sharpe_ratio: float
    best_day: float
    worst_day: float
    max_drawdown: float
    monthly_stats: MonthlyStats | None = None
    sp500_correlation: float | None = None


@dataclass(frozen=True)
class RollingMetricsPoint:
    date: date
    annual_return: float
    volatility: float
    sharpe_ratio: float


@dataclass(frozen=True)
class AssetValidation:
    valid: bool
    invalid_assets: tuple[str, ...]
    valid_assets: tuple[str, ...]
    earliest_valid_date: date | None


# ----------------------------
# Saved configurations
# ----------------------------

@dataclass
class PortfolioConfig:
    id: str
    name: str
    selected_assets: list[str]
    weights: dict[str, float]
    initial_investment: float
    created_at: str
    last_modified: str
    start_date: str | None = None
    end_date: str | None = None
    rebalance_policy: RebalancePolicy = RebalancePolicy.NONE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "selected_assets": list(self.selected_assets),
            "weights": dict(self.weights),
            "initial_investment": self.initial_investment,
            "created_at": self.created_at,
            "last_modified": self.last_modified,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "rebalance_policy": self.rebalance_policy.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PortfolioConfig":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            selected_assets=list(data.get("selected_assets", [])),
            weights={str(k): float(v) for k, v in (data.get("weights") or {}).items()},
            initial_investment=float(data.get("initial_investment", 0.0)),
            created_at=str(data.get("created_at", "")),
            last_modified=str(data.get("last_modified", "")),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            rebalance_policy=RebalancePolicy(data.get("rebalance_policy") or "none"),
        )
