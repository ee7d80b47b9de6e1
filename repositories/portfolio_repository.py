"""
Portfolio Repository - data access layer for Portfolio positions.
"""

from typing import List, Optional

from sqlmodel import Session, select

from models import AccountScope, Portfolio
from repositories.base import session_scope


class PortfolioRepository:
    """Repository for Portfolio position rows."""

    @staticmethod
    def get_by_scope_and_stock(
        scope: AccountScope,
        stock_id: int,
        session: Optional[Session] = None,
        for_update: bool = False
    ) -> Optional[Portfolio]:
        """
        Retrieve the position of one (account, stock) pair.

        Args:
            scope: Account scope of the pair
            stock_id: Stock of the pair
            session: Optional existing session for transaction reuse
            for_update: Lock the row where the database supports it

        Returns:
            Portfolio row or None when nothing is held
        """
        with session_scope(session) as sess:
            statement = select(Portfolio).where(
                scope.filter(Portfolio.account_id),
                Portfolio.stock_id == stock_id
            )
            if for_update:
                statement = statement.with_for_update()
            return sess.exec(statement).first()

    @staticmethod
    def get_all(account_id: Optional[int] = None, session: Optional[Session] = None) -> List[Portfolio]:
        """Retrieve all positions, optionally for one account only."""
        with session_scope(session) as sess:
            statement = select(Portfolio)
            if account_id is not None:
                statement = statement.where(Portfolio.account_id == account_id)
            statement = statement.order_by(Portfolio.account_id, Portfolio.stock_id)
            return list(sess.exec(statement).all())

    @staticmethod
    def save(portfolio: Portfolio, session: Optional[Session] = None) -> Portfolio:
        with session_scope(session) as sess:
            sess.add(portfolio)
            sess.flush()
            return portfolio

    @staticmethod
    def delete(portfolio: Portfolio, session: Optional[Session] = None) -> None:
        with session_scope(session) as sess:
            sess.delete(portfolio)
            sess.flush()
