"""
Portfolio model - the current position held for one (account, stock) pair.
Rows only exist while quantity > 0.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Portfolio(SQLModel, table=True):
    """Current holding of a stock within an account."""
    __tablename__ = "portfolios"
    __table_args__ = (
        UniqueConstraint("account_id", "stock_id", name="uk_portfolio_account_stock"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: Optional[int] = Field(default=None, foreign_key="accounts.id", index=True)
    stock_id: int = Field(foreign_key="stocks.id", index=True)
    quantity: Decimal = Field(max_digits=19, decimal_places=6)
    average_price: Decimal = Field(max_digits=19, decimal_places=2)  # total_investment / quantity
    total_investment: Decimal = Field(max_digits=19, decimal_places=6)  # Cost of shares held, commission included
    updated_at: datetime = Field(default_factory=datetime.now)
