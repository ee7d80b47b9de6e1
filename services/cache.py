"""
Keyed read-side cache for portfolio aggregates.

Entries are only ever evicted explicitly: every unit of work that mutates
portfolio or dividend state names the keys it touched, and the unit of work
evicts them around its commit.
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheKeys:
    """Defined cache keys."""

    PORTFOLIO_SUMMARY = "portfolio:summary"
    SECTOR_ALLOCATION = "portfolio:sectors"
    DIVIDEND_SUMMARY = "dividend:summary"

    @staticmethod
    def account_summary(account_id: int) -> str:
        return f"portfolio:summary:account:{account_id}"

    @staticmethod
    def symbol(symbol: str) -> str:
        return f"portfolio:symbol:{symbol.upper()}"

    @staticmethod
    def for_position(symbol: Optional[str], account_id: Optional[int]) -> list:
        """Every key that depends on one (account, stock) position."""
        keys = [CacheKeys.PORTFOLIO_SUMMARY, CacheKeys.SECTOR_ALLOCATION]
        if symbol:
            keys.append(CacheKeys.symbol(symbol))
        if account_id is not None:
            keys.append(CacheKeys.account_summary(account_id))
        return keys


class PortfolioCache:
    """Thread-safe in-process cache with explicit invalidation."""

    def __init__(self):
        self._entries: Dict[str, Any] = {}
        self._generations: Dict[str, int] = {}
        self._epoch = 0  # bumped by clear()
        self._lock = threading.RLock()

    def _generation(self, key: str) -> Tuple[int, int]:
        return self._epoch, self._generations.get(key, 0)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """
        Return the cached value for key, computing it on a miss.

        The loader runs without the lock. Its result is stored only if the
        key was not evicted meanwhile; otherwise it is returned to this
        caller alone and the next reader loads again.
        """
        with self._lock:
            if key in self._entries:
                return self._entries[key]
            generation = self._generation(key)
        value = loader()
        with self._lock:
            if self._generation(key) == generation:
                self._entries[key] = value
            else:
                logger.debug(f"Discarding load of {key}: evicted while loading")
        return value

    def evict(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)
                self._generations[key] = self._generations.get(key, 0) + 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generations.clear()
            self._epoch += 1
        logger.debug("Portfolio cache cleared")

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries


# Global cache instance
_cache: Optional[PortfolioCache] = None


def get_portfolio_cache() -> PortfolioCache:
    """Get or create the global portfolio cache."""
    global _cache
    if _cache is None:
        _cache = PortfolioCache()
    return _cache
