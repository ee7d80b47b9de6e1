"""
Dividend Repository - data access layer for Dividend model.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlmodel import Session, select

from models import Dividend, Stock
from repositories.base import session_scope


class DividendRepository:
    """Repository for Dividend CRUD operations."""

    @staticmethod
    def add(dividend: Dividend, session: Optional[Session] = None) -> Dividend:
        with session_scope(session) as sess:
            sess.add(dividend)
            sess.flush()
            sess.refresh(dividend)
            return dividend

    @staticmethod
    def save(dividend: Dividend, session: Optional[Session] = None) -> Dividend:
        with session_scope(session) as sess:
            dividend.updated_at = datetime.now()
            sess.add(dividend)
            sess.flush()
            return dividend

    @staticmethod
    def get_by_id(dividend_id: int, session: Optional[Session] = None) -> Optional[Dividend]:
        with session_scope(session) as sess:
            return sess.get(Dividend, dividend_id)

    @staticmethod
    def get_all(session: Optional[Session] = None) -> List[Dividend]:
        with session_scope(session) as sess:
            return list(sess.exec(select(Dividend).order_by(Dividend.payment_date.desc())).all())

    @staticmethod
    def find_by_symbol(symbol: str, session: Optional[Session] = None) -> List[Dividend]:
        """Retrieve the dividends of one stock, newest payment first."""
        with session_scope(session) as sess:
            statement = (
                select(Dividend)
                .join(Stock, Stock.id == Dividend.stock_id)
                .where(Stock.symbol == symbol.strip().upper())
                .order_by(Dividend.payment_date.desc())
            )
            return list(sess.exec(statement).all())

    @staticmethod
    def find_by_period(start: date, end: date, session: Optional[Session] = None) -> List[Dividend]:
        """Retrieve dividends paid between start and end (inclusive), newest first."""
        with session_scope(session) as sess:
            statement = (
                select(Dividend)
                .where(Dividend.payment_date >= start, Dividend.payment_date <= end)
                .order_by(Dividend.payment_date.desc())
            )
            return list(sess.exec(statement).all())

    @staticmethod
    def find_by_account(account_id: int, session: Optional[Session] = None) -> List[Dividend]:
        with session_scope(session) as sess:
            return list(sess.exec(select(Dividend).where(Dividend.account_id == account_id)).all())

    @staticmethod
    def delete(dividend: Dividend, session: Optional[Session] = None) -> None:
        with session_scope(session) as sess:
            sess.delete(dividend)
            sess.flush()
