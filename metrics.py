from __future__ import annotations

import bisect
import logging
import math
from datetime import date
from typing import Sequence

import numpy as np
import pandas as pd

from config import DAYS_PER_YEAR, RISK_FREE_RATE, ROLLING_WINDOW_DAYS
from portfolio_types import (
    Metrics,
    MonthlyPerformance,
    MonthlyStats,
    RollingMetricsPoint,
    ValuePoint,
)

logger = logging.getLogger(__name__)

WEEKLY_STRIDE = 5
MIN_WEEKLY_PAIRS = 10
MIN_DAILY_PAIRS = 20


# ----------------------------
# Return helpers
# ----------------------------

def calculate_daily_returns(values: Sequence[ValuePoint]) -> np.ndarray:
    """Simple day-over-day returns; non-finite ones (prior value 0) become 0."""
    arr = np.array([p.value for p in values], dtype=float)
    if arr.size < 2:
        return np.array([], dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        returns = arr[1:] / arr[:-1] - 1.0
    returns[~np.isfinite(returns)] = 0.0
    return returns


def annualized_volatility(returns: np.ndarray) -> float:
    if returns.size == 0:
        return 0.0
    return float(np.std(returns) * math.sqrt(DAYS_PER_YEAR))


def calculate_cagr(start_value: float, end_value: float, days: int) -> float:
    years = days / DAYS_PER_YEAR
    if years <= 0 or start_value <= 0 or end_value < 0:
        return 0.0
    return (end_value / start_value) ** (1.0 / years) - 1.0


def calculate_sharpe_ratio(annual_return: float, volatility: float) -> float:
    if volatility == 0:
        return 0.0
    return (annual_return - RISK_FREE_RATE) / volatility


def calculate_max_drawdown(values: Sequence[ValuePoint]) -> float:
    """Largest peak-to-trough decline as a positive fraction."""
    if not values:
        return 0.0
    series = pd.Series([p.value for p in values], dtype=float)
    peak = series.cummax()
    # no drawdown while the running peak is not positive
    drawdown = ((peak - series) / peak).where(peak > 0, 0.0)
    return float(drawdown.max())


# ----------------------------
# Monthly breakdown
# ----------------------------

def calculate_monthly_performance(values: Sequence[ValuePoint]) -> MonthlyStats | None:
    if len(values) < 2:
        return None

    frame = pd.DataFrame({
        "month": [p.date.strftime("%Y-%m") for p in values],
        "value": [p.value for p in values],
    })
    grouped = frame.groupby("month", sort=False)["value"].agg(["first", "last"])

    months: list[MonthlyPerformance] = []
    for month, row in grouped.iterrows():
        start, end = float(row["first"]), float(row["last"])
        ret = end / start - 1.0 if start != 0 else 0.0
        months.append(MonthlyPerformance(
            month=str(month), return_=ret, start_value=start, end_value=end))

    returns = [m.return_ for m in months]
    # max/min keep the first month on ties
    best = max(months, key=lambda m: m.return_)
    worst = min(months, key=lambda m: m.return_)
    return MonthlyStats(
        average_return=sum(returns) / len(returns),
        up_months=sum(1 for r in returns if r > 0),
        down_months=sum(1 for r in returns if r <= 0),
        best_month=best,
        worst_month=worst,
        monthly_data=tuple(months),
    )


# ----------------------------
# Benchmark correlation
# ----------------------------

def calculate_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson correlation of paired samples, 0 when undefined."""
    if len(xs) != len(ys) or len(xs) < 2:
        return 0.0
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    sxx = float(np.sum(dx * dx))
    syy = float(np.sum(dy * dy))
    if sxx == 0 or syy == 0:
        return 0.0
    r = float(np.sum(dx * dy)) / math.sqrt(sxx * syy)
    return min(1.0, max(-1.0, r))


def find_nearest_benchmark_date(target: date, benchmark_dates: Sequence[date]) -> date | None:
    """Most recent benchmark date on or before target (never looks forward)."""
    pos = bisect.bisect_right(benchmark_dates, target)
    if pos == 0:
        return None
    return benchmark_dates[pos - 1]


def calculate_benchmark_correlation(
    values: Sequence[ValuePoint],
    benchmark: Sequence[ValuePoint],
) -> float | None:
    """Correlation of portfolio and benchmark returns.

    Tries 5-point strides first (needs 10 pairs), then falls back to
    day-by-day changes of the matched benchmark date (needs 20 pairs).
    """
    if len(benchmark) < 2 or len(values) < 2:
        return None

    by_date = {p.date: p.value for p in benchmark if p.value and p.value > 0}
    dates = sorted(by_date)
    if not dates:
        return None

    port_weekly: list[float] = []
    bench_weekly: list[float] = []
    for i in range(WEEKLY_STRIDE, len(values), WEEKLY_STRIDE):
        prev, curr = values[i - WEEKLY_STRIDE], values[i]
        prev_b = find_nearest_benchmark_date(prev.date, dates)
        curr_b = find_nearest_benchmark_date(curr.date, dates)
        if prev_b is None or curr_b is None or prev_b == curr_b:
            continue
        port_weekly.append(_safe_return(prev.value, curr.value))
        bench_weekly.append(by_date[curr_b] / by_date[prev_b] - 1.0)

    if len(port_weekly) >= MIN_WEEKLY_PAIRS:
        return calculate_correlation(port_weekly, bench_weekly)

    logger.debug("Only %d weekly pairs, falling back to daily alignment", len(port_weekly))

    port_daily: list[float] = []
    bench_daily: list[float] = []
    last_b: date | None = None
    last_value: float | None = None
    for point in values:
        curr_b = find_nearest_benchmark_date(point.date, dates)
        if curr_b is None:
            continue
        if last_b is not None and last_value and curr_b != last_b:
            port_daily.append(point.value / last_value - 1.0)
            bench_daily.append(by_date[curr_b] / by_date[last_b] - 1.0)
        last_b = curr_b
        last_value = point.value

    if len(port_daily) >= MIN_DAILY_PAIRS:
        return calculate_correlation(port_daily, bench_daily)
    return None


def _safe_return(start: float, end: float) -> float:
    if start == 0:
        return 0.0
    return end / start - 1.0


# ----------------------------
# Summary metrics
# ----------------------------

def compute_metrics(
    values: Sequence[ValuePoint],
    initial_investment: float,
    benchmark: Sequence[ValuePoint] | None = None,
) -> Metrics:
    """Summary statistics of a portfolio value series."""
    if len(values) < 2:
        return Metrics(
            initial_investment=initial_investment,
            final_balance=initial_investment,
            total_return=0.0,
            cagr=0.0,
            volatility=0.0,
            sharpe_ratio=0.0,
            best_day=0.0,
            worst_day=0.0,
            max_drawdown=0.0,
        )

    final_balance = values[-1].value
    if initial_investment:
        total_return = (final_balance - initial_investment) / initial_investment
    else:
        total_return = 0.0

    days = (values[-1].date - values[0].date).days
    cagr = calculate_cagr(initial_investment, final_balance, days)

    returns = calculate_daily_returns(values)
    volatility = annualized_volatility(returns)

    correlation = None
    if benchmark:
        correlation = calculate_benchmark_correlation(values, benchmark)

    return Metrics(
        initial_investment=initial_investment,
        final_balance=final_balance,
        total_return=total_return,
        cagr=cagr,
        volatility=volatility,
        sharpe_ratio=calculate_sharpe_ratio(cagr, volatility),
        best_day=float(returns.max()),
        worst_day=float(returns.min()),
        max_drawdown=calculate_max_drawdown(values),
        monthly_stats=calculate_monthly_performance(values),
        sp500_correlation=correlation,
    )


# ----------------------------
# Rolling metrics
# ----------------------------

def calculate_rolling_metrics(
    values: Sequence[ValuePoint],
    window: int = ROLLING_WINDOW_DAYS,
) -> list[RollingMetricsPoint]:
    """Trailing-window annual return, volatility and Sharpe per day."""
    if len(values) <= window:
        return []

    series = pd.Series(
        [p.value for p in values],
        index=pd.to_datetime([p.date for p in values]),
        dtype=float,
    )
    returns = (series / series.shift(1) - 1.0).replace([np.inf, -np.inf], np.nan).fillna(0.0)
    rolling_vol = returns.rolling(window).std(ddof=0) * math.sqrt(DAYS_PER_YEAR)

    out: list[RollingMetricsPoint] = []
    for i in range(window, len(values)):
        start, end = values[i - window], values[i]
        annual = calculate_cagr(start.value, end.value, (end.date - start.date).days)
        vol = float(rolling_vol.iloc[i])
        if not math.isfinite(vol):
            vol = 0.0
        out.append(RollingMetricsPoint(
            date=end.date,
            annual_return=annual,
            volatility=vol,
            sharpe_ratio=calculate_sharpe_ratio(annual, vol),
        ))
    return out
