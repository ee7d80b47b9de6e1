"""
Market data service for stock profiles and current prices.
Wraps yfinance with tenacity retries; the rest of the system only talks to
the market through this class.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

import pandas as pd
import yfinance as yf
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from exceptions import ExternalLookupError
from services.common import infer_market_type, normalize_symbol

logger = logging.getLogger(__name__)


class MarketDataService:
    """
    Service for fetching market data with retry logic.
    """

    @staticmethod
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True
    )
    def _fetch_ticker_info(yf_symbol: str) -> Dict:
        """Fetch ticker info with retry logic."""
        ticker = yf.Ticker(yf_symbol)
        return ticker.info

    @staticmethod
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True
    )
    def _fetch_ticker_history(yf_symbol: str, period: str = "1d") -> pd.DataFrame:
        """Fetch ticker history with retry logic."""
        ticker = yf.Ticker(yf_symbol)
        return ticker.history(period=period)

    @staticmethod
    def fetch_stock_profile(symbol: str, market_type: Optional[str] = None) -> Dict:
        """
        Look up descriptive data for a newly seen symbol.

        Args:
            symbol: Upper-cased stock symbol
            market_type: Market type; inferred from the symbol when omitted

        Returns:
            Dict with 'name', 'exchange', 'sector', 'industry' (values may be None)

        Raises:
            ExternalLookupError: If the provider fails or knows nothing about the symbol
        """
        market_type = market_type or infer_market_type(symbol)
        yf_symbol = normalize_symbol(symbol, market_type)
        try:
            info = MarketDataService._fetch_ticker_info(yf_symbol)
        except Exception as e:
            raise ExternalLookupError(f"Profile lookup failed for {yf_symbol}: {e}") from e

        name = (info or {}).get('longName') or (info or {}).get('shortName')
        if not name:
            raise ExternalLookupError(f"No profile data for {yf_symbol}")

        return {
            'symbol': symbol,
            'yf_symbol': yf_symbol,
            'name': name,
            'exchange': info.get('exchange'),
            'sector': info.get('sector'),
            'industry': info.get('industry'),
        }

    @staticmethod
    @lru_cache(maxsize=256)
    def get_current_price(symbol: str, market_type: str) -> Optional[float]:
        """Fetch current stock price with caching and retry logic."""
        try:
            yf_symbol = normalize_symbol(symbol, market_type)
            info = MarketDataService._fetch_ticker_info(yf_symbol)

            # Try multiple price fields
            price = info.get('currentPrice') or info.get('regularMarketPrice') or info.get('lastPrice')

            if price is None:
                hist = MarketDataService._fetch_ticker_history(yf_symbol, period="1d")
                if not hist.empty:
                    price = hist['Close'].iloc[-1]

            if price:
                return float(price)
            return None

        except Exception as e:
            logger.error(f"Error fetching price for {symbol}: {e}")
            return None

    @staticmethod
    def get_current_prices_batch(symbols: List[Tuple[str, str]], max_workers: int = 5) -> Dict[str, Optional[float]]:
        """
        Fetch current prices for several symbols in parallel.

        Args:
            symbols: (symbol, market_type) tuples
            max_workers: Thread pool size

        Returns:
            Dict mapping symbol to price (None when unavailable)
        """
        prices: Dict[str, Optional[float]] = {}
        if not symbols:
            return prices

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(MarketDataService.get_current_price, symbol, market_type): symbol
                for symbol, market_type in symbols
            }
            for future in as_completed(futures):
                symbol = futures[future]
                try:
                    prices[symbol] = future.result()
                except Exception as e:
                    logger.error(f"Error fetching price for {symbol}: {e}")
                    prices[symbol] = None

        return prices

    @staticmethod
    def clear_cache():
        """Clear the LRU cache."""
        MarketDataService.get_current_price.cache_clear()
        logger.info("Market data cache cleared")
