"""
Services package for the trading journal.
Provides core business logic separated from the data layer.
"""

from services.common import normalize_symbol, infer_market_type
from services.cache import CacheKeys, PortfolioCache, get_portfolio_cache
from services.unit_of_work import UnitOfWork
from services.lot_ledger import Lot, LotLedger
from services.fifo import FifoMatcher, FifoReplay, FifoResult, LotConsumption
from services.portfolio import PortfolioService, PositionState
from services.recalculation import RecalculationEngine
from services.market_data import MarketDataService
from services.stocks import StockService
from services.accounts import AccountService
from services.transactions import TransactionService
from services.dividends import DividendService
from services.tax import TaxReport, TaxService
from services.analysis import AnalysisService
from services.notification import EmailService
from services.alerts import AlertService, TriggeredAlert

__all__ = [
    # Common utilities
    'normalize_symbol',
    'infer_market_type',
    # Infrastructure
    'CacheKeys',
    'PortfolioCache',
    'get_portfolio_cache',
    'UnitOfWork',
    # FIFO core
    'Lot',
    'LotLedger',
    'FifoMatcher',
    'FifoReplay',
    'FifoResult',
    'LotConsumption',
    'PortfolioService',
    'PositionState',
    'RecalculationEngine',
    'TransactionService',
    # Supporting services
    'MarketDataService',
    'StockService',
    'AccountService',
    'DividendService',
    'TaxReport',
    'TaxService',
    'AnalysisService',
    'EmailService',
    'AlertService',
    'TriggeredAlert',
]
