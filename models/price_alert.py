"""
PriceAlert model - notify when a stock crosses a target price.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class AlertCondition(str, Enum):
    ABOVE = "ABOVE"  # Trigger when price >= target
    BELOW = "BELOW"  # Trigger when price <= target


class PriceAlert(SQLModel, table=True):
    """A one-shot price alert; deactivated once triggered."""
    __tablename__ = "price_alerts"

    id: Optional[int] = Field(default=None, primary_key=True)
    stock_id: int = Field(foreign_key="stocks.id", index=True)
    condition: AlertCondition
    target_price: Decimal = Field(max_digits=19, decimal_places=6)
    is_active: bool = Field(default=True, index=True)
    note: Optional[str] = Field(default=None)
    triggered_at: Optional[datetime] = Field(default=None)
    triggered_price: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=6)
    created_at: datetime = Field(default_factory=datetime.now)
