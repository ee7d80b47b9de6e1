"""
Transaction Repository - data access layer for Transaction model.
All per-pair queries take an AccountScope so that rows without an account
are selected with IS NULL rather than "= NULL".
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from models import AccountScope, Stock, Transaction, TransactionType
from repositories.base import session_scope


class TransactionRepository:
    """Repository for Transaction CRUD operations."""

    @staticmethod
    def add(transaction: Transaction, session: Optional[Session] = None) -> Transaction:
        """
        Persist a new transaction.

        Args:
            transaction: Unsaved Transaction instance
            session: Optional existing session for transaction reuse

        Returns:
            The transaction with its id assigned
        """
        with session_scope(session) as sess:
            sess.add(transaction)
            sess.flush()
            sess.refresh(transaction)
            return transaction

    @staticmethod
    def save(transaction: Transaction, session: Optional[Session] = None) -> Transaction:
        with session_scope(session) as sess:
            transaction.updated_at = datetime.now()
            sess.add(transaction)
            sess.flush()
            return transaction

    @staticmethod
    def get_by_id(
        transaction_id: int,
        session: Optional[Session] = None,
        for_update: bool = False
    ) -> Optional[Transaction]:
        with session_scope(session) as sess:
            statement = select(Transaction).where(Transaction.id == transaction_id)
            if for_update:
                statement = statement.with_for_update()
            return sess.exec(statement).first()

    @staticmethod
    def delete(transaction: Transaction, session: Optional[Session] = None) -> None:
        with session_scope(session) as sess:
            sess.delete(transaction)
            sess.flush()

    @staticmethod
    def find_by_scope_and_stock(
        scope: AccountScope,
        stock_id: int,
        session: Optional[Session] = None,
        for_update: bool = False
    ) -> List[Transaction]:
        """
        Retrieve every transaction of one (account, stock) pair in replay order.

        Args:
            scope: Account scope of the pair
            stock_id: Stock of the pair
            session: Optional existing session for transaction reuse
            for_update: Lock the rows where the database supports it

        Returns:
            Transactions ordered by transaction_date, then id
        """
        with session_scope(session) as sess:
            statement = (
                select(Transaction)
                .where(scope.filter(Transaction.account_id), Transaction.stock_id == stock_id)
                .order_by(Transaction.transaction_date, Transaction.id)
            )
            if for_update:
                statement = statement.with_for_update()
            return list(sess.exec(statement).all())

    @staticmethod
    def find_open_lots(
        scope: AccountScope,
        stock_id: int,
        before: Optional[datetime] = None,
        session: Optional[Session] = None,
        for_update: bool = False
    ) -> List[Transaction]:
        """
        Retrieve BUY transactions that still hold shares, optionally only those predating a sale.

        Args:
            scope: Account scope of the pair
            stock_id: Stock of the pair
            before: Only lots with transaction_date strictly before this instant (None = all)
            session: Optional existing session for transaction reuse
            for_update: Lock the rows where the database supports it

        Returns:
            BUY transactions ordered oldest first (transaction_date, then id)
        """
        with session_scope(session) as sess:
            statement = (
                select(Transaction)
                .where(
                    scope.filter(Transaction.account_id),
                    Transaction.stock_id == stock_id,
                    Transaction.transaction_type == TransactionType.BUY,
                    Transaction.remaining_quantity > 0
                )
                .order_by(Transaction.transaction_date, Transaction.id)
            )
            if before is not None:
                statement = statement.where(Transaction.transaction_date < before)
            if for_update:
                statement = statement.with_for_update()
            return list(sess.exec(statement).all())

    @staticmethod
    def exists_after(
        scope: AccountScope,
        stock_id: int,
        when: datetime,
        session: Optional[Session] = None
    ) -> bool:
        """True if the pair has any transaction dated at or after `when`."""
        with session_scope(session) as sess:
            statement = select(Transaction.id).where(
                scope.filter(Transaction.account_id),
                Transaction.stock_id == stock_id,
                Transaction.transaction_date >= when
            )
            return sess.exec(statement).first() is not None

    @staticmethod
    def find(
        account_id: Optional[int] = None,
        symbol: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        transaction_type: Optional[TransactionType] = None,
        session: Optional[Session] = None
    ) -> List[Transaction]:
        """
        Retrieve transactions matching every given filter, newest first.

        Args:
            account_id: Restrict to one account
            symbol: Restrict to one stock symbol (case-insensitive)
            start: Inclusive lower bound on transaction_date
            end: Inclusive upper bound on transaction_date
            transaction_type: Restrict to BUY or SELL
            session: Optional existing session for transaction reuse

        Returns:
            List of Transaction objects
        """
        with session_scope(session) as sess:
            statement = select(Transaction)
            if account_id is not None:
                statement = statement.where(Transaction.account_id == account_id)
            if symbol is not None:
                statement = statement.join(Stock, Stock.id == Transaction.stock_id).where(
                    Stock.symbol == symbol.strip().upper()
                )
            if start is not None:
                statement = statement.where(Transaction.transaction_date >= start)
            if end is not None:
                statement = statement.where(Transaction.transaction_date <= end)
            if transaction_type is not None:
                statement = statement.where(Transaction.transaction_type == transaction_type)
            statement = statement.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
            return list(sess.exec(statement).all())

    @staticmethod
    def find_by_account(account_id: int, session: Optional[Session] = None) -> List[Transaction]:
        with session_scope(session) as sess:
            statement = select(Transaction).where(Transaction.account_id == account_id)
            return list(sess.exec(statement).all())

    @staticmethod
    def distinct_pairs(session: Optional[Session] = None) -> List[Tuple[Optional[int], int]]:
        """All (account_id, stock_id) pairs that have at least one transaction."""
        with session_scope(session) as sess:
            statement = (
                select(Transaction.account_id, Transaction.stock_id)
                .distinct()
                .order_by(Transaction.account_id, Transaction.stock_id)
            )
            return [(row[0], row[1]) for row in sess.exec(statement).all()]
