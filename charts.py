from __future__ import annotations

from io import BytesIO
from typing import Sequence

import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.ticker import FuncFormatter, PercentFormatter

from portfolio_types import MonthlyStats, RollingMetricsPoint, ValuePoint


def _money_axis(val: float, _pos=None) -> str:
    if abs(val) >= 1_000_000:
        return f"${val / 1_000_000:.1f}M"
    if abs(val) >= 1_000:
        return f"${val / 1_000:.0f}k"
    return f"${val:.0f}"


def plot_value_series(
    values: Sequence[ValuePoint],
    title: str,
    benchmark: Sequence[ValuePoint] | None = None,
) -> plt.Figure:
    """Portfolio value line; an optional benchmark is rebased to the same start."""
    fig, ax = plt.subplots(figsize=(11, 5.5))
    ax.plot([p.date for p in values], [p.value for p in values],
            label="Portfolio", linewidth=1.6, color="#22C55E")
    if benchmark and values and values[0].value > 0:
        base = benchmark[0].value
        scale = values[0].value / base if base else 0.0
        ax.plot([p.date for p in benchmark], [p.value * scale for p in benchmark],
                label="S&P 500 (rebased)", linewidth=1.2, color="#8C9CB1")
    ax.set_title(title)
    ax.set_ylabel("Portfolio value")
    ax.yaxis.set_major_formatter(FuncFormatter(_money_axis))
    ax.grid(True, alpha=0.25)
    ax.legend(fontsize=9)
    fig.autofmt_xdate()
    return fig


def plot_rolling_metric(
    rolling: Sequence[RollingMetricsPoint],
    metric: str,
    title: str,
) -> plt.Figure:
    """metric is 'sharpe_ratio' or 'volatility'."""
    fig, ax = plt.subplots(figsize=(11, 4.5))
    dates = [p.date for p in rolling]
    ys = [getattr(p, metric) for p in rolling]
    if metric == "volatility":
        ax.fill_between(dates, [y * 100.0 for y in ys], alpha=0.25, color="#F59E0B")
        ax.plot(dates, [y * 100.0 for y in ys], linewidth=1.4, color="#F59E0B")
        ax.yaxis.set_major_formatter(PercentFormatter(decimals=0))
    else:
        ax.plot(dates, ys, linewidth=1.4, color="#2563EB")
        ax.axhline(0.0, color="#999999", linewidth=0.8, linestyle="--")
    ax.set_title(title)
    ax.grid(True, alpha=0.25)
    fig.autofmt_xdate()
    return fig


def plot_monthly_returns(stats: MonthlyStats, title: str = "Monthly returns") -> plt.Figure:
    fig, ax = plt.subplots(figsize=(11, 4.5))
    labels = [m.month for m in stats.monthly_data]
    rets = [m.return_ * 100.0 for m in stats.monthly_data]
    colors = ["#9BBB59" if r > 0 else "#C0504D" for r in rets]
    ax.bar(labels, rets, color=colors)
    ax.axhline(0.0, color="#555555", linewidth=0.8)
    ax.yaxis.set_major_formatter(PercentFormatter(decimals=0))
    ax.set_title(title)
    ax.grid(True, axis="y", alpha=0.25)
    step = max(1, len(labels) // 24)
    ax.set_xticks(range(0, len(labels), step))
    ax.set_xticklabels(labels[::step], rotation=45, ha="right", fontsize=8)
    return fig


def fig_to_png_bytes(fig: plt.Figure) -> bytes:
    buf = BytesIO()
    fig.savefig(buf, format="png", dpi=170, bbox_inches="tight")
    plt.close(fig)
    buf.seek(0)
    return buf.getvalue()


def figures_to_pdf_bytes(figs: Sequence[plt.Figure]) -> bytes:
    """One landscape page per figure."""
    buf = BytesIO()
    with PdfPages(buf) as pdf:
        for fig in figs:
            fig.set_size_inches(11.69, 8.27)
            pdf.savefig(fig, bbox_inches="tight")
            plt.close(fig)
    buf.seek(0)
    return buf.getvalue()
