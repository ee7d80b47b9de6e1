"""
Dividend model - a dividend payment received for a stock.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import SQLModel, Field


class Dividend(SQLModel, table=True):
    """Dividend received, before and after withholding tax."""
    __tablename__ = "dividends"

    id: Optional[int] = Field(default=None, primary_key=True)
    stock_id: int = Field(foreign_key="stocks.id", index=True)
    account_id: Optional[int] = Field(default=None, foreign_key="accounts.id", index=True)
    ex_dividend_date: date
    payment_date: date = Field(index=True)
    dividend_per_share: Decimal = Field(max_digits=19, decimal_places=6)
    quantity: Decimal = Field(max_digits=19, decimal_places=6)  # Shares held on the ex-dividend date
    tax_rate: Decimal = Field(max_digits=7, decimal_places=4)  # Percent withheld
    total_amount: Decimal = Field(max_digits=19, decimal_places=2)  # Before tax
    tax_amount: Decimal = Field(max_digits=19, decimal_places=2)
    net_amount: Decimal = Field(max_digits=19, decimal_places=2)  # After tax
    memo: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class DividendCreate(SQLModel):
    """Dividend creation request"""
    stock_symbol: str = Field(min_length=1, max_length=20)
    ex_dividend_date: date
    payment_date: date
    dividend_per_share: Decimal = Field(gt=0)
    quantity: Decimal = Field(gt=0)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)  # Percent; None = configured default
    account_id: Optional[int] = None
    memo: Optional[str] = Field(default=None, max_length=500)


class DividendUpdate(SQLModel):
    """Partial dividend update"""
    ex_dividend_date: Optional[date] = None
    payment_date: Optional[date] = None
    dividend_per_share: Optional[Decimal] = Field(default=None, gt=0)
    quantity: Optional[Decimal] = Field(default=None, gt=0)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    memo: Optional[str] = Field(default=None, max_length=500)
