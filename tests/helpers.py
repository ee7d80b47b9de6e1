"""Builders for transaction requests used across the test modules."""

from datetime import datetime
from decimal import Decimal

from models import TransactionCreate, TransactionType


def day(n: int, hour: int = 10) -> datetime:
    """A fixed date in January 2024, n = day of month."""
    return datetime(2024, 1, n, hour, 0, 0)


def trade(symbol, transaction_type, quantity, price, when, commission=None, account_id=None, **extra):
    return TransactionCreate(
        stock_symbol=symbol,
        transaction_type=transaction_type,
        quantity=Decimal(str(quantity)),
        price=Decimal(str(price)),
        commission=Decimal(str(commission)) if commission is not None else None,
        transaction_date=when,
        account_id=account_id,
        **extra
    )


def buy(symbol, quantity, price, when, **kwargs):
    return trade(symbol, TransactionType.BUY, quantity, price, when, **kwargs)


def sell(symbol, quantity, price, when, **kwargs):
    return trade(symbol, TransactionType.SELL, quantity, price, when, **kwargs)
