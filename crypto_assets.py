from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CryptoAsset:
    ticker: str  # Yahoo symbol, e.g. "BTC-USD"
    name: str
    symbol: str
    market_cap_rank: int


AVAILABLE_CRYPTO_ASSETS: tuple[CryptoAsset, ...] = (
    CryptoAsset("BTC-USD", "Bitcoin", "BTC", 1),
    CryptoAsset("ETH-USD", "Ethereum", "ETH", 2),
    CryptoAsset("BNB-USD", "BNB", "BNB", 4),
    CryptoAsset("SOL-USD", "Solana", "SOL", 5),
    CryptoAsset("XRP-USD", "Ripple", "XRP", 6),
    CryptoAsset("DOGE-USD", "Dogecoin", "DOGE", 8),
    CryptoAsset("ADA-USD", "Cardano", "ADA", 10),
    CryptoAsset("AVAX-USD", "Avalanche", "AVAX", 11),
    CryptoAsset("DOT-USD", "Polkadot", "DOT", 12),
    CryptoAsset("MATIC-USD", "Polygon", "MATIC", 13),
    CryptoAsset("LINK-USD", "Chainlink", "LINK", 14),
    CryptoAsset("LTC-USD", "Litecoin", "LTC", 15),
    CryptoAsset("TRX-USD", "Tron", "TRX", 16),
    CryptoAsset("UNI7083-USD", "Uniswap", "UNI", 20),
    CryptoAsset("ATOM-USD", "Cosmos", "ATOM", 25),
)


def get_asset_by_ticker(ticker: str) -> CryptoAsset | None:
    for asset in AVAILABLE_CRYPTO_ASSETS:
        if asset.ticker == ticker:
            return asset
    return None


def display_symbol(ticker: str) -> str:
    """'BTC-USD' -> 'BTC'; other tickers unchanged."""
    asset = get_asset_by_ticker(ticker)
    if asset is not None:
        return asset.symbol
    return ticker.replace("-USD", "")
