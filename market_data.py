from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Sequence

import numpy as np
import pandas as pd
import yfinance as yf

from config import BENCHMARK_TICKER
from portfolio_types import PriceRecord, ValuePoint

logger = logging.getLogger(__name__)


# ----------------------------
# Yahoo download (Close only)
# ----------------------------

def fetch_yahoo_close(symbols: list[str], start: date, end: date) -> tuple[pd.DataFrame, list[dict]]:
    """Download auto-adjusted daily closes, one column per symbol."""
    if not symbols:
        return pd.DataFrame(), [{"symbol": "", "problem": "No symbols provided"}]
    end_plus = end + timedelta(days=1)
    data = yf.download(
        symbols,
        start=start,
        end=end_plus,
        interval="1d",
        auto_adjust=True,
        progress=False,
        group_by="column",
    )
    issues: list[dict] = []
    if data is None or getattr(data, "empty", True):
        logger.warning("No data returned for %s", ",".join(symbols))
        issues.append({"symbol": ",".join(symbols),
                       "problem": "No data returned for any symbol"})
        return pd.DataFrame(), issues
    if isinstance(data.columns, pd.MultiIndex):
        if "Close" not in data.columns.get_level_values(0):
            issues.append({"symbol": ",".join(symbols),
                           "problem": "Expected Close in yfinance output but not found"})
            return pd.DataFrame(), issues
        close = data["Close"].copy()
    elif "Close" in data.columns:
        close = data["Close"].to_frame()
        close.columns = [symbols[0]]
    else:
        issues.append({"symbol": symbols[0], "problem": "Close not found in yfinance output"})
        return pd.DataFrame(), issues

    for s in symbols:
        if s not in close.columns or close[s].isna().all():
            logger.warning("Failed to fetch data for %s", s)
            if s not in close.columns:
                close[s] = np.nan
            issues.append({"symbol": s, "problem": "No prices returned (column kept as all-NaN)"})
    index = pd.to_datetime(close.index)
    if index.tz is not None:
        index = index.tz_convert(None)
    close.index = index.normalize()
    close = close.sort_index()
    # rows sharing a date collapse to the last non-null value per column
    close = close.groupby(level=0).last()
    return close[symbols], issues


# ----------------------------
# Alignment / forward-fill
# ----------------------------

def align_and_forward_fill(close: pd.DataFrame) -> tuple[pd.DataFrame, list[dict]]:
    """Forward-fill gaps; before a symbol's first price fill with 0 (not listed)."""
    close = close.sort_index().copy()
    listing_gaps: list[dict] = []
    if close.empty:
        return close, listing_gaps
    first_idx = close.index.min()
    last_idx = close.index.max()
    for s in close.columns:
        ser = close[s]
        if ser.isna().all():
            listing_gaps.append({
                "symbol": s,
                "type": "nodata",
                "start": first_idx,
                "end": last_idx,
            })
            continue
        first_valid = ser.first_valid_index()
        if first_valid is not None and first_valid > first_idx:
            listing_gaps.append({
                "symbol": s,
                "type": "unlisted",
                "start": first_idx,
                "end": first_valid - pd.Timedelta(days=1),
                "listed_from": first_valid,
            })
    close = close.ffill().fillna(0.0)
    return close, listing_gaps


def frame_to_price_records(close: pd.DataFrame) -> list[PriceRecord]:
    records: list[PriceRecord] = []
    for ts, row in close.sort_index().iterrows():
        prices = {str(sym): float(px) for sym, px in row.items() if pd.notna(px)}
        records.append(PriceRecord(date=pd.Timestamp(ts).date(), prices=prices))
    return records


def benchmark_series(records: Sequence[PriceRecord], ticker: str = BENCHMARK_TICKER) -> list[ValuePoint]:
    """Benchmark closes as value points, dates without a positive price dropped."""
    return [
        ValuePoint(date=r.date, value=r.price(ticker))
        for r in records
        if r.price(ticker) > 0
    ]


def load_price_records(
    symbols: list[str],
    start: date,
    end: date,
    benchmark: str | None = BENCHMARK_TICKER,
) -> tuple[list[PriceRecord], list[dict], list[dict]]:
    """Fetch, align and forward-fill prices for symbols plus the benchmark.

    Returns (records, download_issues, listing_gaps).
    """
    to_fetch = list(dict.fromkeys(symbols))
    if benchmark and benchmark not in to_fetch:
        to_fetch.append(benchmark)
    close, issues = fetch_yahoo_close(to_fetch, start, end)
    filled, gaps = align_and_forward_fill(close)
    records = frame_to_price_records(filled)
    logger.info("Loaded %d aligned days for %d symbols", len(records), len(to_fetch))
    return records, issues, gaps
