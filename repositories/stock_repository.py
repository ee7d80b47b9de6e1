"""
Stock Repository - data access layer for Stock model.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from models import Stock
from repositories.base import session_scope


class StockRepository:
    """Repository for Stock CRUD operations."""

    @staticmethod
    def add(stock: Stock, session: Optional[Session] = None) -> Stock:
        """
        Persist a new stock.

        Args:
            stock: Unsaved Stock instance (symbol already upper-cased)
            session: Optional existing session for transaction reuse

        Returns:
            The stock with its id assigned
        """
        with session_scope(session) as sess:
            sess.add(stock)
            sess.flush()
            sess.refresh(stock)
            return stock

    @staticmethod
    def save(stock: Stock, session: Optional[Session] = None) -> Stock:
        with session_scope(session) as sess:
            stock.updated_at = datetime.now()
            sess.add(stock)
            sess.flush()
            return stock

    @staticmethod
    def get_by_id(stock_id: int, session: Optional[Session] = None) -> Optional[Stock]:
        with session_scope(session) as sess:
            return sess.get(Stock, stock_id)

    @staticmethod
    def get_by_symbol(symbol: str, session: Optional[Session] = None) -> Optional[Stock]:
        """
        Retrieve a stock by symbol (case-insensitive).

        Args:
            symbol: Symbol to search for
            session: Optional existing session for transaction reuse

        Returns:
            Stock object or None if not found
        """
        with session_scope(session) as sess:
            statement = select(Stock).where(func.upper(Stock.symbol) == symbol.strip().upper())
            return sess.exec(statement).first()

    @staticmethod
    def get_all(session: Optional[Session] = None) -> List[Stock]:
        with session_scope(session) as sess:
            return list(sess.exec(select(Stock).order_by(Stock.symbol)).all())
