"""
UserPreferences model - stores user preferences and settings.
"""

from typing import Optional
from sqlmodel import SQLModel, Field


class UserPreferences(SQLModel, table=True):
    """Stores user preferences and settings."""
    __tablename__ = "user_preferences"

    id: Optional[int] = Field(default=None, primary_key=True)
    email_address: Optional[str] = Field(default=None)  # Price alert recipient
    alerts_enabled: bool = Field(default=True)
    base_currency: Optional[str] = Field(default="USD")  # "USD", "KRW", "HKD", etc.
