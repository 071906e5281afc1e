from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from config import MAX_ASSETS, MIN_RANGE_DAYS, MIN_START_DATE
from portfolio_types import AssetValidation, RebalancePolicy

SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]+-USD$")

DATE_PRESETS = ["YTD", "1Y", "3Y", "5Y", "MAX"]


# ----------------------------
# Weights
# ----------------------------

def parse_weight_lines(raw: str) -> tuple[dict[str, float], str | None]:
    """
    Parse portfolio input: TICKER, WEIGHT (one per line).
    Returns: (ticker -> weight, error_message)
    """
    weights: dict[str, float] = {}
    for ln in (raw or "").splitlines():
        ln = ln.strip()
        if not ln:
            continue
        parts = [p.strip() for p in ln.split(",")]
        if len(parts) != 2:
            return {}, f"Invalid format: '{ln}'. Expected: TICKER, WEIGHT"
        ticker = parts[0].upper()
        try:
            weight = float(parts[1])
        except ValueError:
            return {}, f"Invalid weight for {ticker}: '{parts[1]}' is not a number"
        if weight < 0:
            return {}, f"Weight for {ticker} must be non-negative (got {weight})"
        if ticker in weights:
            return {}, f"Duplicate ticker: {ticker}"
        weights[ticker] = weight
    if not weights:
        return {}, "Portfolio is empty"
    if len(weights) > MAX_ASSETS:
        return {}, f"At most {MAX_ASSETS} assets are supported (got {len(weights)})"
    return weights, None


def format_weight_lines(weights: dict[str, float]) -> str:
    return "\n".join(f"{t}, {w:g}" for t, w in weights.items())


def weight_sum_warning(weights: dict[str, float]) -> str | None:
    total = sum(weights.values())
    if abs(total - 100.0) > 0.01:
        return f"Weights sum to {total:.2f}% rather than 100%; each weight is applied as-is."
    return None


def validate_asset_symbols(symbols: list[str]) -> tuple[list[str], list[str]]:
    """Split symbols into (accepted, rejected) by the XXX-USD pattern."""
    accepted = [s for s in symbols if SYMBOL_PATTERN.match(s)]
    rejected = [s for s in symbols if not SYMBOL_PATTERN.match(s)]
    return accepted, rejected


def filter_valid_weights(weights: dict[str, float], validation: AssetValidation) -> dict[str, float]:
    """Keep only tickers that had a price on the first day."""
    return {t: w for t, w in weights.items() if t in validation.valid_assets and w}


# ----------------------------
# Dates
# ----------------------------

def validate_date_range(start: date, end: date, today: date | None = None) -> str | None:
    today = today or date.today()
    if start < MIN_START_DATE:
        return f"Start date cannot be before {MIN_START_DATE.isoformat()}"
    if end > today:
        return "End date cannot be in the future"
    if start >= end:
        return "Start date must be before end date"
    if (end - start).days < MIN_RANGE_DAYS:
        return f"Date range must be at least {MIN_RANGE_DAYS} days"
    return None


def _years_before(d: date, years: int) -> date:
    try:
        return d.replace(year=d.year - years)
    except ValueError:
        # 29 Feb -> 28 Feb
        return d.replace(year=d.year - years, day=28)


def resolve_date_preset(preset: str, today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    if preset == "YTD":
        return date(today.year, 1, 1), today
    if preset == "1Y":
        return _years_before(today, 1), today
    if preset == "3Y":
        return _years_before(today, 3), today
    if preset == "5Y":
        return _years_before(today, 5), today
    return MIN_START_DATE, today


# ----------------------------
# Presets
# ----------------------------

@dataclass(frozen=True)
class PortfolioPreset:
    id: str
    name: str
    description: str
    start_date: date
    weights: dict[str, float]
    rebalance_policy: RebalancePolicy = RebalancePolicy.NONE


PORTFOLIO_PRESETS: tuple[PortfolioPreset, ...] = (
    PortfolioPreset(
        id="btc-only",
        name="BTC Only",
        description="Bitcoin 100%",
        start_date=date(2021, 1, 1),
        weights={"BTC-USD": 100.0},
    ),
    PortfolioPreset(
        id="btc-eth",
        name="BTC + ETH",
        description="Bitcoin 70%, Ethereum 30%",
        start_date=date(2021, 1, 1),
        weights={"BTC-USD": 70.0, "ETH-USD": 30.0},
    ),
    PortfolioPreset(
        id="btc-eth-sol",
        name="BTC + ETH + SOL",
        description="Bitcoin 60%, Ethereum 30%, Solana 10%",
        start_date=date(2021, 1, 1),
        weights={"BTC-USD": 60.0, "ETH-USD": 30.0, "SOL-USD": 10.0},
    ),
)


def get_preset(preset_id: str) -> PortfolioPreset | None:
    for preset in PORTFOLIO_PRESETS:
        if preset.id == preset_id:
            return preset
    return None
