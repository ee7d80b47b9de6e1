"""
Account model - a brokerage account that owns transactions and positions.
Also defines AccountScope, the (account | no account) selector used by
every per-pair query.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class AccountType(str, Enum):
    ISA = "ISA"            # Tax-advantaged individual savings account
    PENSION = "PENSION"
    GENERAL = "GENERAL"    # Regular brokerage account
    CUSTOM = "CUSTOM"      # User defined (per strategy, etc.)


class Account(SQLModel, table=True):
    """Represents an investment account."""
    __tablename__ = "accounts"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    account_type: AccountType = Field(default=AccountType.GENERAL)
    description: Optional[str] = Field(default=None, max_length=500)
    is_default: bool = Field(default=False, index=True)
    user_id: Optional[int] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class AccountCreate(SQLModel):
    """Account creation request"""
    name: str = Field(min_length=1, max_length=100)
    account_type: AccountType = AccountType.GENERAL
    description: Optional[str] = Field(default=None, max_length=500)


class AccountUpdate(SQLModel):
    """Partial account update"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    account_type: Optional[AccountType] = None
    description: Optional[str] = Field(default=None, max_length=500)


@dataclass(frozen=True)
class AccountScope:
    """
    Which account a (account, stock) pair belongs to.

    Transactions recorded before accounts existed have no account; they
    form their own "legacy" scope and are never mixed with an explicit
    account's rows.
    """
    account_id: Optional[int] = None

    @classmethod
    def legacy(cls) -> "AccountScope":
        return cls(None)

    @classmethod
    def explicit(cls, account_id: int) -> "AccountScope":
        if account_id is None:
            raise ValueError("explicit scope requires an account id")
        return cls(account_id)

    @classmethod
    def of(cls, account_id: Optional[int]) -> "AccountScope":
        """Scope for a stored account_id column value."""
        return cls(account_id)

    @property
    def is_legacy(self) -> bool:
        return self.account_id is None

    def filter(self, column):
        """SQL criterion selecting rows of this scope on an account_id column."""
        if self.is_legacy:
            return column.is_(None)
        return column == self.account_id

    def __str__(self) -> str:
        if self.is_legacy:
            return "no account"
        return f"account {self.account_id}"
