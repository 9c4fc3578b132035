"""Price service for fetching crypto market data using yfinance."""

import logging
from datetime import datetime, timedelta

import pandas as pd
import yfinance as yf

from .models import SourceLink

logger = logging.getLogger(__name__)

# Tickers whose Yahoo Finance symbol is not simply "<TICKER>-USD"
YAHOO_SYMBOL_OVERRIDES = {
    "UNI": "UNI7083",
    "SUI": "SUI20947",
    "APT": "APT21794",
    "ARB": "ARB11841",
    "TIA": "TIA22861",
    "PEPE": "PEPE24478",
}


class PriceFetchError(Exception):
    """Raised when no usable price could be fetched for a ticker."""
    def __init__(self, symbol: str, message: str):
        self.symbol = symbol
        super().__init__(f"{symbol}: {message}")


class PriceService:
    """Service for fetching current prices and daily price history."""

    def __init__(self, cache_ttl_seconds: int = 300, quote_currency: str = "USD"):
        """Initialize the price service.

        Args:
            cache_ttl_seconds: How long to cache prices (default 5 minutes)
            quote_currency: Currency the Yahoo pairs are quoted in
        """
        self.cache_ttl = timedelta(seconds=cache_ttl_seconds)
        self.quote_currency = quote_currency
        self._price_cache: dict[str, tuple[float, datetime]] = {}
        self._history_cache: dict[str, tuple[list[tuple[float, float]], datetime]] = {}

    def yahoo_symbol(self, ticker: str) -> str:
        """Yahoo Finance pair symbol for a coin ticker, e.g. BTC -> BTC-USD."""
        base = ticker.upper().strip()
        base = YAHOO_SYMBOL_OVERRIDES.get(base, base)
        return f"{base}-{self.quote_currency}"

    def _sources(self, symbol: str) -> list[SourceLink]:
        return [SourceLink(title="Yahoo Finance", url=f"https://finance.yahoo.com/quote/{symbol}")]

    def get_current_price(self, ticker: str) -> tuple[float, list[SourceLink]]:
        """Get current price for a coin.

        Args:
            ticker: Coin ticker, e.g. BTC

        Returns:
            (price, sources)

        Raises:
            PriceFetchError: If no price data is available
        """
        symbol = self.yahoo_symbol(ticker)

        # Check cache first
        if symbol in self._price_cache:
            price, cached_at = self._price_cache[symbol]
            if datetime.now() - cached_at < self.cache_ttl:
                return price, self._sources(symbol)

        try:
            yf_ticker = yf.Ticker(symbol)
            # Try intraday data first for real-time price
            hist = yf_ticker.history(period="1d", interval="1m")
            if hist.empty:
                # Fallback to daily data
                hist = yf_ticker.history(period="5d")
        except Exception as e:
            logger.error(f"Error fetching price for {symbol}: {e}")
            raise PriceFetchError(symbol, str(e)) from e

        closes = hist["Close"].dropna() if not hist.empty else hist
        if closes.empty:
            logger.warning(f"No price data available for {symbol}")
            raise PriceFetchError(symbol, "no price data available")

        price = float(closes.iloc[-1])
        self._price_cache[symbol] = (price, datetime.now())
        return price, self._sources(symbol)

    def get_price_history(self, ticker: str, period: str = "max") -> list[tuple[float, float]]:
        """Get daily closing prices for a coin.

        Args:
            ticker: Coin ticker, e.g. BTC
            period: yfinance period string

        Returns:
            Ascending list of (epoch milliseconds, close), empty if unavailable
        """
        symbol = self.yahoo_symbol(ticker)
        cache_key = f"{symbol}_{period}"
        if cache_key in self._history_cache:
            data, cached_at = self._history_cache[cache_key]
            if datetime.now() - cached_at < self.cache_ttl:
                return data

        try:
            history = yf.Ticker(symbol).history(period=period, interval="1d")
        except Exception as e:
            logger.error(f"Error fetching price history for {symbol}: {e}")
            return []

        if history.empty:
            logger.warning(f"No price history for {symbol}")
            return []

        history.index = pd.to_datetime(history.index)
        samples = []
        for ts, close in history["Close"].items():
            if pd.isna(close) or close <= 0:
                continue
            samples.append((ts.timestamp() * 1000, float(close)))
        samples.sort(key=lambda s: s[0])

        logger.info(f"Fetched {len(samples)} daily prices for {symbol}")
        self._history_cache[cache_key] = (samples, datetime.now())
        return samples

    def clear_cache(self) -> None:
        """Clear all cached data."""
        self._price_cache.clear()
        self._history_cache.clear()


# Global price service instance
price_service = PriceService()
