from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from config import BENCHMARK_TICKER, RISK_FREE_RATE
from crypto_assets import display_symbol
from portfolio_types import Metrics, PriceRecord, RebalancePolicy


@dataclass(frozen=True)
class ExportSnapshot:
    start_date: date
    end_date: date
    initial_investment: float
    selected_assets: list[str]
    weights: dict[str, float]
    metrics: Metrics
    market_data: Sequence[PriceRecord]
    rebalance_policy: RebalancePolicy = RebalancePolicy.NONE
    portfolio_name: str | None = None


def _pct(value: float) -> str:
    return f"{value * 100:.2f}%"


def _money(value: float, decimals: int = 2) -> str:
    return f"${value:.{decimals}f}"


def generate_csv(snapshot: ExportSnapshot) -> str:
    """Multi-section CSV: configuration, summary, monthly breakdown, daily prices."""
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    m = snapshot.metrics

    w.writerow(["=== PORTFOLIO CONFIGURATION ==="])
    w.writerow([])
    w.writerow(["Portfolio Name", snapshot.portfolio_name or "Custom Portfolio"])
    w.writerow(["Start Date", snapshot.start_date.isoformat()])
    w.writerow(["End Date", snapshot.end_date.isoformat()])
    w.writerow(["Initial Investment", _money(snapshot.initial_investment, 0)])
    w.writerow(["Rebalancing Strategy", RebalancePolicy(snapshot.rebalance_policy).value])
    w.writerow([])
    w.writerow(["Asset Allocation:"])
    w.writerow(["Asset", "Weight (%)"])
    for asset in snapshot.selected_assets:
        w.writerow([display_symbol(asset), f"{snapshot.weights.get(asset, 0):g}%"])
    w.writerow([])
    w.writerow([])

    w.writerow(["=== SUMMARY DASHBOARD METRICS ==="])
    w.writerow([])
    w.writerow(["Metric", "Value"])
    w.writerow(["Final Balance", _money(m.final_balance)])
    w.writerow(["Total Return", _pct(m.total_return)])
    w.writerow(["Annualized Return (CAGR)", _pct(m.cagr)])
    w.writerow([f"Sharpe Ratio ({RISK_FREE_RATE * 100:g}% RFR)", f"{m.sharpe_ratio:.2f}"])
    w.writerow(["Volatility (Annualized)", _pct(m.volatility)])
    w.writerow([
        "S&P 500 Correlation",
        f"{m.sp500_correlation:.2f}" if m.sp500_correlation is not None else "N/A",
    ])
    w.writerow(["Max Drawdown", _pct(m.max_drawdown)])
    w.writerow(["Best Day", _pct(m.best_day)])
    w.writerow(["Worst Day", _pct(m.worst_day)])
    w.writerow([])
    w.writerow([])

    w.writerow(["=== MONTHLY PERFORMANCE BREAKDOWN ==="])
    w.writerow([])
    stats = m.monthly_stats
    if stats is not None:
        w.writerow(["Monthly Summary:"])
        w.writerow(["Average Monthly Return", _pct(stats.average_return)])
        w.writerow(["Up Months", stats.up_months])
        w.writerow(["Down Months", stats.down_months])
        w.writerow(["Best Month", f"{stats.best_month.month} ({_pct(stats.best_month.return_)})"])
        w.writerow(["Worst Month", f"{stats.worst_month.month} ({_pct(stats.worst_month.return_)})"])
        w.writerow([])
        w.writerow(["Monthly Details:"])
        w.writerow(["Month", "Return (%)", "Start Value", "End Value"])
        for month in stats.monthly_data:
            w.writerow([
                month.month,
                _pct(month.return_),
                _money(month.start_value),
                _money(month.end_value),
            ])
    else:
        w.writerow(["No monthly data available"])
    w.writerow([])
    w.writerow([])

    w.writerow(["=== DAILY CLOSING PRICES ==="])
    w.writerow([])
    w.writerow(["Date"] + [display_symbol(a) for a in snapshot.selected_assets]
               + [f"{BENCHMARK_TICKER} (S&P 500)"])
    for record in snapshot.market_data:
        row = [record.date.isoformat()]
        for asset in snapshot.selected_assets:
            px = record.price(asset)
            row.append(f"{px:.2f}" if px > 0 else "0")
        bench = record.prices.get(BENCHMARK_TICKER)
        row.append(f"{bench:.2f}" if bench is not None else "")
        w.writerow(row)

    return buf.getvalue().rstrip("\n")


def snapshot_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"portfolio-snapshot-{today.isoformat()}.csv"
