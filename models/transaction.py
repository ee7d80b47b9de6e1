"""
Transaction model - a BUY or SELL of a stock, plus the FIFO state derived
from the transaction history.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import field_validator
from sqlalchemy import Index
from sqlmodel import SQLModel, Field


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


def to_naive_local(value: Optional[datetime]) -> Optional[datetime]:
    """Transaction dates are stored naive in local time; aware values are converted."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class Transaction(SQLModel, table=True):
    """Represents a buy/sell transaction for a stock."""
    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transaction_account_stock", "account_id", "stock_id"),
        Index("idx_transaction_fifo", "account_id", "stock_id", "transaction_type", "transaction_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: Optional[int] = Field(default=None, foreign_key="accounts.id")  # None = recorded before accounts
    stock_id: int = Field(foreign_key="stocks.id", index=True)
    transaction_type: TransactionType
    quantity: Decimal = Field(max_digits=19, decimal_places=6)
    price: Decimal = Field(max_digits=19, decimal_places=6)  # Price per share
    commission: Decimal = Field(default=Decimal("0"), max_digits=19, decimal_places=6)
    transaction_date: datetime = Field(index=True)
    notes: Optional[str] = Field(default=None)

    # FIFO state
    remaining_quantity: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=6)  # BUY only
    realized_pnl: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=6)  # SELL only
    cost_basis: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=6)  # SELL only

    # Risk management
    stop_loss_price: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=6)
    take_profit_price: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=6)
    initial_risk_amount: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=6)
    risk_reward_ratio: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=4)
    r_multiple: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=4)

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_buy(self) -> bool:
        return self.transaction_type == TransactionType.BUY

    @property
    def is_sell(self) -> bool:
        return self.transaction_type == TransactionType.SELL

    @property
    def total_amount(self) -> Decimal:
        """Cash out for a BUY (commission added), cash in for a SELL (commission deducted)."""
        amount = self.price * self.quantity
        commission = self.commission or Decimal("0")
        if self.is_buy:
            return amount + commission
        return amount - commission


class TransactionCreate(SQLModel):
    """Transaction creation request"""
    stock_symbol: str = Field(min_length=1, max_length=20)
    transaction_type: TransactionType
    quantity: Decimal = Field(gt=0)
    price: Decimal = Field(gt=0)
    commission: Optional[Decimal] = Field(default=None, ge=0)  # None = no commission
    transaction_date: datetime
    account_id: Optional[int] = None  # None = the default account
    notes: Optional[str] = None
    stop_loss_price: Optional[Decimal] = Field(default=None, gt=0)
    take_profit_price: Optional[Decimal] = Field(default=None, gt=0)

    @field_validator('transaction_date')
    @classmethod
    def strip_timezone(cls, value):
        return to_naive_local(value)


class TransactionUpdate(SQLModel):
    """Partial transaction update; only fields that are set are applied."""
    quantity: Optional[Decimal] = Field(default=None, gt=0)
    price: Optional[Decimal] = Field(default=None, gt=0)
    commission: Optional[Decimal] = Field(default=None, ge=0)
    transaction_date: Optional[datetime] = None
    account_id: Optional[int] = None
    notes: Optional[str] = None
    stop_loss_price: Optional[Decimal] = Field(default=None, gt=0)
    take_profit_price: Optional[Decimal] = Field(default=None, gt=0)

    @field_validator('transaction_date')
    @classmethod
    def strip_timezone(cls, value):
        return to_naive_local(value)
