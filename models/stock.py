"""
Stock model - a tradable security referenced by transactions.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class Sector(str, Enum):
    """GICS based sector classification."""
    TECH = "TECH"
    HEALTH = "HEALTH"
    FINANCE = "FINANCE"
    CONSUMER_DISC = "CONSUMER_DISC"
    CONSUMER_STAP = "CONSUMER_STAP"
    INDUSTRIAL = "INDUSTRIAL"
    ENERGY = "ENERGY"
    MATERIALS = "MATERIALS"
    UTILITIES = "UTILITIES"
    REAL_ESTATE = "REAL_ESTATE"
    COMMUNICATION = "COMMUNICATION"
    OTHER = "OTHER"


# yfinance "sector" strings -> Sector
YAHOO_SECTOR_MAP = {
    "Technology": Sector.TECH,
    "Healthcare": Sector.HEALTH,
    "Financial Services": Sector.FINANCE,
    "Consumer Cyclical": Sector.CONSUMER_DISC,
    "Consumer Defensive": Sector.CONSUMER_STAP,
    "Industrials": Sector.INDUSTRIAL,
    "Energy": Sector.ENERGY,
    "Basic Materials": Sector.MATERIALS,
    "Utilities": Sector.UTILITIES,
    "Real Estate": Sector.REAL_ESTATE,
    "Communication Services": Sector.COMMUNICATION,
}


class Stock(SQLModel, table=True):
    """Represents a stock known to the journal."""
    __tablename__ = "stocks"

    id: Optional[int] = Field(default=None, primary_key=True)
    symbol: str = Field(index=True, unique=True)  # e.g., "NVDA", "0700.HK", "005930.KS"
    name: str = Field(index=True)
    exchange: Optional[str] = Field(default=None)
    market_type: str = Field(default="US")  # "US", "HK", "CN", "KR"
    sector: Optional[Sector] = Field(default=None)
    industry: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
