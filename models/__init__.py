"""
Database models for the trading journal.
All SQLModel table definitions are centralized here.
"""

from models.account import Account, AccountCreate, AccountScope, AccountType, AccountUpdate
from models.stock import Stock, Sector, YAHOO_SECTOR_MAP
from models.transaction import Transaction, TransactionCreate, TransactionType, TransactionUpdate
from models.portfolio import Portfolio
from models.dividend import Dividend, DividendCreate, DividendUpdate
from models.price_alert import AlertCondition, PriceAlert
from models.user_preferences import UserPreferences

__all__ = [
    'Account',
    'AccountCreate',
    'AccountScope',
    'AccountType',
    'AccountUpdate',
    'Stock',
    'Sector',
    'YAHOO_SECTOR_MAP',
    'Transaction',
    'TransactionCreate',
    'TransactionType',
    'TransactionUpdate',
    'Portfolio',
    'Dividend',
    'DividendCreate',
    'DividendUpdate',
    'AlertCondition',
    'PriceAlert',
    'UserPreferences',
]
