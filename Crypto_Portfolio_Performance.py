from __future__ import annotations

from datetime import date

import pandas as pd
import streamlit as st

import config
from charts import (
    fig_to_png_bytes,
    figures_to_pdf_bytes,
    plot_monthly_returns,
    plot_rolling_metric,
    plot_value_series,
)
from crypto_assets import AVAILABLE_CRYPTO_ASSETS, display_symbol
from export import ExportSnapshot, generate_csv, snapshot_filename
from logging_config import get_logger, setup_logging
from market_data import benchmark_series, load_price_records
from metrics import calculate_rolling_metrics, compute_metrics
from portfolio_input import (
    DATE_PRESETS,
    PORTFOLIO_PRESETS,
    filter_valid_weights,
    format_weight_lines,
    get_preset,
    parse_weight_lines,
    resolve_date_preset,
    validate_asset_symbols,
    validate_date_range,
    weight_sum_warning,
)
from portfolio_storage import PortfolioStorageError, PortfolioStore
from portfolio_types import RebalancePolicy
from valuation import compute_value_series, rebalance_dates, validate_assets_for_date_range

setup_logging(config.LOG_LEVEL)
logger = get_logger(__name__)

store = PortfolioStore()


@st.cache_data(show_spinner=False, ttl=3600)
def cached_price_records(symbols: tuple[str, ...], start: date, end: date):
    return load_price_records(list(symbols), start, end)


def fmt_d(d: date) -> str:
    return d.strftime("%d/%m/%Y")


# ----------------------------
# Session defaults
# ----------------------------

if "weights_text" not in st.session_state:
    st.session_state["weights_text"] = format_weight_lines(config.DEFAULT_WEIGHTS)
    st.session_state["initial_investment"] = config.DEFAULT_INITIAL_INVESTMENT
    st.session_state["start_date"] = config.MIN_START_DATE
    st.session_state["end_date"] = date.today()
    st.session_state["rebalance"] = RebalancePolicy.NONE.value


def apply_preset(preset_id: str) -> None:
    preset = get_preset(preset_id)
    if preset is None:
        return
    st.session_state["weights_text"] = format_weight_lines(preset.weights)
    st.session_state["start_date"] = preset.start_date
    st.session_state["end_date"] = date.today()
    st.session_state["rebalance"] = preset.rebalance_policy.value


def apply_date_preset(preset: str) -> None:
    start, end = resolve_date_preset(preset)
    st.session_state["start_date"] = start
    st.session_state["end_date"] = end


def apply_saved(config_id: str) -> None:
    saved = store.get(config_id)
    if saved is None:
        return
    st.session_state["weights_text"] = format_weight_lines(saved.weights)
    st.session_state["initial_investment"] = saved.initial_investment
    if saved.start_date:
        st.session_state["start_date"] = date.fromisoformat(saved.start_date)
    if saved.end_date:
        st.session_state["end_date"] = date.fromisoformat(saved.end_date)
    st.session_state["rebalance"] = saved.rebalance_policy.value


# ----------------------------
# Streamlit App
# ----------------------------

st.set_page_config(page_title="Crypto Portfolio Performance", layout="wide")

st.title("Crypto Portfolio Performance")
st.caption("Backtest a weighted crypto basket with optional rebalancing.")

with st.sidebar:
    st.header("Investment Settings")
    initial_investment = st.number_input(
        "Initial investment ($)", min_value=0.0, step=1000.0, key="initial_investment")

    st.subheader("Quick date ranges")
    cols = st.columns(len(DATE_PRESETS))
    for col, preset in zip(cols, DATE_PRESETS):
        col.button(preset, on_click=apply_date_preset, args=(preset,), use_container_width=True)
    start_date = st.date_input("Start date", key="start_date")
    end_date = st.date_input("End date", key="end_date")

    st.header("Portfolio")
    preset_ids = [p.id for p in PORTFOLIO_PRESETS]
    chosen = st.selectbox(
        "Preset",
        preset_ids,
        format_func=lambda pid: f"{get_preset(pid).name} ({get_preset(pid).description})",
    )
    st.button("Load preset", on_click=apply_preset, args=(chosen,))
    weights_text = st.text_area(
        "Tickers + Weight",
        height=140,
        key="weights_text",
        help="One per line. Format: TICKER, WEIGHT (e.g. BTC-USD, 40). Weights are percentages.",
    )
    with st.expander("Available assets"):
        st.dataframe(
            pd.DataFrame([{"Ticker": a.ticker, "Name": a.name, "Rank": a.market_cap_rank}
                          for a in AVAILABLE_CRYPTO_ASSETS]),
            hide_index=True,
            use_container_width=True,
        )

    policy_value = st.selectbox(
        "Rebalancing",
        [p.value for p in RebalancePolicy],
        format_func=lambda v: RebalancePolicy(v).label,
        key="rebalance",
    )
    policy = RebalancePolicy(policy_value)

    st.header("Saved portfolios")
    saved_configs = store.list_configs()
    if saved_configs:
        saved_id = st.selectbox(
            "Saved",
            [c.id for c in saved_configs],
            format_func=lambda cid: next(c.name for c in saved_configs if c.id == cid),
        )
        c1, c2 = st.columns(2)
        c1.button("Load", on_click=apply_saved, args=(saved_id,), use_container_width=True)
        if c2.button("Delete", use_container_width=True):
            store.delete(saved_id)
            st.rerun()
    save_name = st.text_input("Name", placeholder="My portfolio")
    if st.button("Save current"):
        weights_to_save, err = parse_weight_lines(weights_text)
        if err:
            st.error(err)
        else:
            try:
                store.save(
                    name=save_name.strip() or f"Portfolio {start_date} to {end_date}",
                    weights=weights_to_save,
                    initial_investment=initial_investment,
                    start_date=start_date.isoformat(),
                    end_date=end_date.isoformat(),
                    rebalance_policy=policy,
                )
                st.success("Saved.")
            except PortfolioStorageError as exc:
                st.error(str(exc))
    stats = store.storage_stats()
    st.caption(f"Storage used: {stats['used'] / 1024:.1f} KB ({stats['percentage']:.2f}%)")

    run = st.button("Update dashboard", type="primary")

if not run:
    st.info("Set up the portfolio on the left, then click 'Update dashboard'.")
    st.stop()

# ----------------------------
# Validate input
# ----------------------------

weights, weights_error = parse_weight_lines(weights_text)
if weights_error:
    st.error(weights_error)
    st.stop()

accepted, rejected = validate_asset_symbols(list(weights))
if rejected:
    st.error(f"Unsupported tickers (expected XXX-USD): {', '.join(rejected)}")
    st.stop()

date_error = validate_date_range(start_date, end_date)
if date_error:
    st.error(date_error)
    st.stop()

sum_warning = weight_sum_warning(weights)
if sum_warning:
    st.warning(sum_warning)

# ----------------------------
# Prices
# ----------------------------

with st.spinner("Fetching latest prices..."):
    records, issues, listing_gaps = cached_price_records(tuple(accepted), start_date, end_date)

if not records:
    st.error("No price data returned.")
    st.stop()

if issues:
    st.warning("Some Yahoo download issues occurred:")
    for it in issues:
        st.write(f"- {it.get('symbol', '?')}: {it.get('problem', 'Unknown issue')}")

validation = validate_assets_for_date_range(records, weights)
if not validation.valid:
    excluded = ", ".join(display_symbol(a) for a in validation.invalid_assets)
    msg = (f"Some assets were not available on {start_date.isoformat()}. "
           f"The following assets have been excluded from the portfolio: {excluded}.")
    if validation.earliest_valid_date:
        msg += (f" Suggestion: select a start date on or after "
                f"{validation.earliest_valid_date.isoformat()} to include all selected assets.")
    st.warning(msg)
    weights = filter_valid_weights(weights, validation)
    if not weights:
        st.error("None of the selected assets have prices on the start date.")
        st.stop()

# ----------------------------
# Engine
# ----------------------------

values = compute_value_series(records, weights, initial_investment, policy)
benchmark = benchmark_series(records)
metrics = compute_metrics(values, initial_investment, benchmark or None)
rolling = calculate_rolling_metrics(values)
logger.info("Dashboard computed for %s (%s)", ",".join(weights), policy.value)

# ----------------------------
# Summary
# ----------------------------

st.subheader("Summary")
r1 = st.columns(4)
r1[0].metric("Final balance", f"${metrics.final_balance:,.2f}", f"{metrics.total_return * 100:.2f}%")
r1[1].metric("CAGR", f"{metrics.cagr * 100:.2f}%")
r1[2].metric(f"Sharpe ({config.RISK_FREE_RATE * 100:g}% RFR)", f"{metrics.sharpe_ratio:.2f}")
r1[3].metric("Volatility (annualized)", f"{metrics.volatility * 100:.2f}%")
r2 = st.columns(4)
r2[0].metric("Max drawdown", f"-{metrics.max_drawdown * 100:.2f}%")
r2[1].metric("Best day", f"{metrics.best_day * 100:.2f}%")
r2[2].metric("Worst day", f"{metrics.worst_day * 100:.2f}%")
r2[3].metric(
    "S&P 500 correlation",
    f"{metrics.sp500_correlation:.2f}" if metrics.sp500_correlation is not None else "N/A",
)

# ----------------------------
# Charts
# ----------------------------

title = f"Portfolio value: {start_date} to {end_date}"
if policy != RebalancePolicy.NONE:
    title += f" ({policy.label.lower()} rebalancing)"

tab_value, tab_sharpe, tab_vol = st.tabs(["Portfolio value", "Rolling Sharpe", "Rolling volatility"])
with tab_value:
    fig = plot_value_series(values, title=title, benchmark=benchmark)
    st.pyplot(fig, use_container_width=True)
    png_bytes = fig_to_png_bytes(fig)
with tab_sharpe:
    if rolling:
        st.pyplot(plot_rolling_metric(
            rolling, "sharpe_ratio",
            f"1-Year Rolling Sharpe Ratio ({config.RISK_FREE_RATE * 100:g}% risk-free rate)"))
    else:
        st.info("Need at least 12 months of data for rolling metrics.")
with tab_vol:
    if rolling:
        st.pyplot(plot_rolling_metric(rolling, "volatility", "1-Year Rolling Annualized Volatility"))
    else:
        st.info("Need at least 12 months of data for rolling metrics.")

# ----------------------------
# Monthly performance
# ----------------------------

st.subheader("Monthly performance")
monthly = metrics.monthly_stats
if monthly is not None:
    m = st.columns(4)
    m[0].metric("Average month", f"{monthly.average_return * 100:.2f}%")
    m[1].metric("Up / down months", f"{monthly.up_months} / {monthly.down_months}")
    m[2].metric("Best month", monthly.best_month.month, f"{monthly.best_month.return_ * 100:.2f}%")
    m[3].metric("Worst month", monthly.worst_month.month, f"{monthly.worst_month.return_ * 100:.2f}%")
    st.pyplot(plot_monthly_returns(monthly), use_container_width=True)
    st.dataframe(
        pd.DataFrame([{
            "Month": mp.month,
            "Return": f"{mp.return_ * 100:.2f}%",
            "Start value": f"${mp.start_value:,.2f}",
            "End value": f"${mp.end_value:,.2f}",
        } for mp in reversed(monthly.monthly_data)]),
        hide_index=True,
        use_container_width=True,
    )
else:
    st.info("No monthly data available.")

# ----------------------------
# Export
# ----------------------------

st.subheader("Export")
snapshot = ExportSnapshot(
    portfolio_name=f"Portfolio {start_date} to {end_date}",
    start_date=start_date,
    end_date=end_date,
    initial_investment=initial_investment,
    selected_assets=list(weights),
    weights=weights,
    metrics=metrics,
    market_data=records,
    rebalance_policy=policy,
)
e1, e2, e3 = st.columns(3)
e1.download_button(
    "Download CSV snapshot",
    data=generate_csv(snapshot),
    file_name=snapshot_filename(),
    mime="text/csv",
)
e2.download_button(
    "Download chart as PNG",
    data=png_bytes,
    file_name=f"portfolio_chart_{start_date}_{end_date}.png",
    mime="image/png",
)
pdf_figs = [plot_value_series(values, title=title, benchmark=benchmark)]
if monthly is not None:
    pdf_figs.append(plot_monthly_returns(monthly))
if rolling:
    pdf_figs.append(plot_rolling_metric(rolling, "sharpe_ratio", "1-Year Rolling Sharpe Ratio"))
    pdf_figs.append(plot_rolling_metric(rolling, "volatility", "1-Year Rolling Annualized Volatility"))
e3.download_button(
    "Download PDF report",
    data=figures_to_pdf_bytes(pdf_figs),
    file_name=f"portfolio-snapshot-{start_date}-to-{end_date}.pdf",
    mime="application/pdf",
)

# ----------------------------
# Notes
# ----------------------------

st.subheader("Notes / data quality")
notes: list[str] = []
rebals = rebalance_dates(records, policy)
if rebals:
    shown = ", ".join(fmt_d(d) for d in rebals[:5])
    more = "" if len(rebals) <= 5 else f" (+{len(rebals) - 5} more)"
    notes.append(f"{policy.label} rebalancing applied on {shown}{more}.")
for gap in listing_gaps:
    sym = display_symbol(gap["symbol"])
    if gap["type"] == "nodata":
        notes.append(f"{sym} has no usable Yahoo price history in the selected range.")
    else:
        notes.append(
            f"{sym} has no prices before {fmt_d(pd.Timestamp(gap['listed_from']).date())}; "
            "treated as not yet listed (price 0)."
        )
if not notes:
    notes.append(f"All prices available from {fmt_d(start_date)} to {fmt_d(end_date)}.")
for line in notes:
    st.write(f"- {line}")
