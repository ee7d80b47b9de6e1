"""
Repositories package for the trading journal.
Provides data access layer for all database operations.
"""

from repositories.account_repository import AccountRepository
from repositories.stock_repository import StockRepository
from repositories.transaction_repository import TransactionRepository
from repositories.portfolio_repository import PortfolioRepository
from repositories.dividend_repository import DividendRepository
from repositories.alert_repository import AlertRepository
from repositories.user_preferences_repository import UserPreferencesRepository

__all__ = [
    'AccountRepository',
    'StockRepository',
    'TransactionRepository',
    'PortfolioRepository',
    'DividendRepository',
    'AlertRepository',
    'UserPreferencesRepository',
]
