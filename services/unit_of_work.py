"""
Unit of work spanning transaction rows, FIFO lot updates and portfolio rows.

Usage:
    with UnitOfWork() as uow:
        uow.session.add(...)
        uow.invalidate(CacheKeys.PORTFOLIO_SUMMARY)

Everything inside the block commits together or not at all. Cache keys
registered with invalidate() are evicted right before the commit and again
right after it, so no reader can keep a pre-commit aggregate.
"""

import logging
from typing import Optional, Set

from sqlmodel import Session

from db_engine import get_session
from services.cache import PortfolioCache, get_portfolio_cache

logger = logging.getLogger(__name__)


class UnitOfWork:
    """All-or-nothing database work with cache invalidation tied to the commit."""

    def __init__(self, cache: Optional[PortfolioCache] = None):
        self.cache = cache if cache is not None else get_portfolio_cache()
        self.session: Optional[Session] = None
        self._pending_keys: Set[str] = set()

    def __enter__(self) -> "UnitOfWork":
        self.session = get_session()
        self._pending_keys = set()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.session.close()
        return False

    def invalidate(self, *keys: str) -> None:
        """Register cache keys to evict when this unit commits."""
        self._pending_keys.update(keys)

    def commit(self) -> None:
        self.session.flush()
        self.cache.evict(self._pending_keys)
        self.session.commit()
        self.cache.evict(self._pending_keys)
        if self._pending_keys:
            logger.debug(f"Evicted cache keys: {sorted(self._pending_keys)}")
        self._pending_keys = set()

    def rollback(self) -> None:
        self.session.rollback()
        self._pending_keys = set()
