"""
Stock service: find-or-create by symbol with best-effort enrichment.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from exceptions import ExternalLookupError, StockNotFoundError, ValidationError
from models import Sector, Stock, YAHOO_SECTOR_MAP
from repositories import StockRepository
from services.cache import CacheKeys
from services.common import infer_market_type
from services.market_data import MarketDataService
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class StockService:
    """Stock lookup, creation and classification."""

    @staticmethod
    def find_or_create_stock(symbol: str) -> Stock:
        """
        Return the stock for a symbol, creating it on first use.

        A new symbol is enriched from market data. If the lookup fails the
        stock is still created, keyed by symbol only.

        Args:
            symbol: Symbol in any case, surrounding whitespace ignored

        Returns:
            The persisted Stock
        """
        normalized = (symbol or "").strip().upper()
        if not normalized:
            raise ValidationError("Stock symbol is required")

        existing = StockRepository.get_by_symbol(normalized)
        if existing:
            return existing

        market_type = infer_market_type(normalized)
        try:
            profile = MarketDataService.fetch_stock_profile(normalized, market_type)
        except ExternalLookupError as e:
            logger.warning(f"Enrichment failed for {normalized}, creating symbol-only stock: {e}")
            profile = {}

        stock = Stock(
            symbol=normalized,
            name=profile.get('name') or normalized,
            exchange=profile.get('exchange'),
            market_type=market_type,
            sector=YAHOO_SECTOR_MAP.get(profile.get('sector'), Sector.OTHER) if profile.get('sector') else None,
            industry=profile.get('industry'),
        )

        try:
            stock = StockRepository.add(stock)
        except IntegrityError:
            # Another writer created the same symbol first
            existing = StockRepository.get_by_symbol(normalized)
            if existing is None:
                raise
            return existing

        logger.info(f"Created stock {stock.symbol} ({stock.name})")
        return stock

    @staticmethod
    def get_stock(stock_id: int) -> Stock:
        stock = StockRepository.get_by_id(stock_id)
        if stock is None:
            raise StockNotFoundError(stock_id)
        return stock

    @staticmethod
    def get_stock_by_symbol(symbol: str) -> Stock:
        stock = StockRepository.get_by_symbol(symbol)
        if stock is None:
            raise StockNotFoundError(symbol, f"Stock not found with symbol: {symbol}")
        return stock

    @staticmethod
    def list_stocks() -> List[Stock]:
        return StockRepository.get_all()

    @staticmethod
    def update_classification(stock_id: int, sector: Optional[Sector], industry: Optional[str] = None) -> Stock:
        """Set sector/industry by hand; sector allocation caches are evicted."""
        with UnitOfWork() as uow:
            stock = StockRepository.get_by_id(stock_id, session=uow.session)
            if stock is None:
                raise StockNotFoundError(stock_id)
            stock.sector = sector
            stock.industry = industry
            StockRepository.save(stock, session=uow.session)
            uow.invalidate(CacheKeys.SECTOR_ALLOCATION, CacheKeys.symbol(stock.symbol))

        logger.info(f"Classified {stock.symbol}: {sector}, {industry}")
        return stock
