from __future__ import annotations

import os
from datetime import date

from dotenv import load_dotenv

load_dotenv()

# ----------------------------
# Environment settings
# ----------------------------

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

PORTFOLIO_STORE_PATH = os.environ.get("PORTFOLIO_STORE_PATH", "saved_portfolios.json")

# ----------------------------
# Analytics constants
# ----------------------------

RISK_FREE_RATE = 0.03  # annual, used for Sharpe and rolling Sharpe

DAYS_PER_YEAR = 365  # crypto trades every calendar day

ROLLING_WINDOW_DAYS = 365

BENCHMARK_TICKER = "^GSPC"

# ----------------------------
# Input limits
# ----------------------------

MIN_START_DATE = date(2020, 1, 1)

MIN_RANGE_DAYS = 30

MAX_ASSETS = 20

MAX_SAVED_CONFIGS = 10

DEFAULT_INITIAL_INVESTMENT = 10_000.0

DEFAULT_WEIGHTS = {
    "BTC-USD": 40.0,
    "ETH-USD": 35.0,
    "SOL-USD": 25.0,
}
